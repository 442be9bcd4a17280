"""
OpenAI 兼容 Embedding 模型

通过 httpx 调用本地推理服务（llama.cpp server、Ollama 等）的 /v1/embeddings 接口
"""

import asyncio
from typing import Any, List

import httpx
from loguru import logger

from ext.embedding.base import EmbeddingModel
from ext.embedding.exceptions import EmbeddingAPIError, EmbeddingConfigError, EmbeddingTimeoutError
from ext.embedding.types import OpenAICompatibleEmbeddingExtraConfig

# 认证与参数错误不重试
_NON_RETRYABLE_STATUS_CODES = (400, 401, 403, 404, 422)


class OpenAICompatibleEmbeddingModel(EmbeddingModel):
    """OpenAI 兼容 Embedding 模型"""

    def __init__(
        self,
        model_name_or_path: str,
        dimension: int,
        base_url: str | None = None,
        api_key: str | None = None,
        max_batch_size: int = 32,
        max_token_per_request: int = 8191,
        timeout: float = 60.0,
        max_retries: int = 2,
        retry_delay: float = 0.5,
        extra_config: dict[str, Any] | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        """
        初始化模型

        Args:
            model_name_or_path: 模型名称
            dimension: 向量维度
            base_url: 服务地址
            api_key: API密钥（本地服务通常不需要）
            max_batch_size: 单次请求最大条数
            max_token_per_request: 单次请求最大 token 数
            timeout: 请求超时时间（秒）
            max_retries: 最大重试次数
            retry_delay: 重试间隔（秒）
            extra_config: 额外配置（dict），内部转换为 OpenAICompatibleEmbeddingExtraConfig
            client: httpx 客户端（可选，默认使用全局客户端）
        """
        if not base_url:
            logger.error("Configuration validation failed: openai_compatible embedding requires base_url")
            raise EmbeddingConfigError("openai_compatible embedding requires base_url")

        super().__init__(
            model_name_or_path=model_name_or_path,
            dimension=dimension,
            max_batch_size=max_batch_size,
            max_token_per_request=max_token_per_request,
        )
        self.base_url = base_url
        self.api_key = api_key
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.extra_config = OpenAICompatibleEmbeddingExtraConfig.from_dict(extra_config or {})
        self._client = client

    def get_httpx_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client

        from config.main import local_configs

        return local_configs.extensions.httpx.instance

    def build_endpoint_url(self) -> str:
        endpoint = self.extra_config.endpoint
        if not endpoint.startswith("/"):
            endpoint = "/" + endpoint
        return f"{self.base_url.rstrip('/')}{endpoint}"

    def build_request_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            auth_type = self.extra_config.auth_type
            headers[self.extra_config.auth_header] = f"{auth_type} {self.api_key}" if auth_type else self.api_key
        headers.update(self.extra_config.headers)
        return headers

    def build_request_body(self, texts: List[str]) -> dict[str, Any]:
        body: dict[str, Any] = {
            self.extra_config.input_field: texts,
            self.extra_config.model_field: self.model_name_or_path,
        }
        if self.extra_config.encoding_format:
            body["encoding_format"] = self.extra_config.encoding_format
        return body

    def parse_response(self, data: dict[str, Any]) -> List[List[float]]:
        """解析响应，按 index 字段恢复输入顺序"""
        items = data.get(self.extra_config.embedding_field_path)
        if not isinstance(items, list):
            raise EmbeddingAPIError(f"Response missing '{self.extra_config.embedding_field_path}' list")

        index_field = self.extra_config.index_field
        ordered = sorted(enumerate(items), key=lambda pair: pair[1].get(index_field, pair[0]))
        return [item[self.extra_config.embedding_value_field] for _, item in ordered]

    async def _embed_batch_impl(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []

        client = self.get_httpx_client()
        url = self.build_endpoint_url()
        headers = self.build_request_headers()
        body = self.build_request_body(texts)

        for attempt in range(self.max_retries + 1):
            logger.debug(
                f"openai_compatible embedding request: model={self.model_name_or_path}, "
                f"texts_count={len(texts)}, attempt={attempt + 1}"
            )
            try:
                response = await client.post(url, json=body, headers=headers, timeout=self.timeout)
            except httpx.TimeoutException as e:
                if attempt >= self.max_retries:
                    raise EmbeddingTimeoutError(
                        f"Embedding request timeout after {self.max_retries + 1} attempts"
                    ) from e
                logger.warning(f"openai_compatible embedding timeout (attempt {attempt + 1}): {e}")
                await asyncio.sleep(self.retry_delay)
                continue
            except httpx.TransportError as e:
                if attempt >= self.max_retries:
                    raise EmbeddingAPIError(f"Connection error: {e}") from e
                logger.warning(f"openai_compatible embedding connection error (attempt {attempt + 1}): {e}")
                await asyncio.sleep(self.retry_delay)
                continue

            if response.status_code == 200:
                embeddings = self.parse_response(response.json())
                logger.debug(
                    f"openai_compatible embedding success: model={self.model_name_or_path}, "
                    f"texts_count={len(texts)}"
                )
                return embeddings

            error_text = response.text
            if response.status_code in _NON_RETRYABLE_STATUS_CODES or attempt >= self.max_retries:
                logger.error(
                    f"openai_compatible embedding API error: status={response.status_code}, response={error_text}"
                )
                raise EmbeddingAPIError(
                    f"Embedding API error: {error_text}",
                    status_code=response.status_code,
                    response_text=error_text,
                )

            logger.warning(f"openai_compatible embedding status {response.status_code}, retrying (attempt {attempt + 1})")
            await asyncio.sleep(self.retry_delay)

        raise EmbeddingAPIError(f"Embedding request failed after {self.max_retries + 1} attempts")

    def __repr__(self) -> str:
        return (
            f"OpenAICompatibleEmbeddingModel("
            f"model_name={self.model_name_or_path}, "
            f"dimension={self.dimension}, "
            f"base_url={self.base_url})"
        )


__all__ = [
    "OpenAICompatibleEmbeddingModel",
]
