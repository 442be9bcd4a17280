"""
OpenAI 兼容 Provider

使用 httpx 直接调用本地推理服务（llama.cpp server、Ollama、vLLM 等）
的 /v1/chat/completions 接口
"""

import asyncio
import json
import time
from collections.abc import AsyncIterator
from typing import Any

import httpx
from loguru import logger

from ext.llm.base import BaseLanguageModel
from ext.llm.exceptions import LLMAPIError, LLMConfigError, LLMStreamingError, LLMTimeoutError
from ext.llm.types import (
    ChatMessage,
    GenerationConfig,
    ModelResponse,
    OpenAICompatibleExtraConfig,
    TokenUsage,
)
from util.general import truncate_content


class OpenAICompatibleModel(BaseLanguageModel):
    """
    OpenAI 兼容的语言模型

    每次 generate 发送单条 user 消息（可选 system 消息），
    GenerationConfig 映射为 OpenAI 请求字段，top_k / repeat_penalty 作为扩展字段透传。
    """

    def __init__(
        self,
        model_name: str,
        base_url: str,
        api_key: str | None = None,
        max_context_tokens: int = 4096,
        timeout: float = 60.0,
        max_retries: int = 2,
        system_prompt: str | None = None,
        default_config: GenerationConfig | None = None,
        extra_config: dict[str, Any] | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        """
        初始化模型

        Args:
            model_name: 模型名称
            base_url: 服务地址
            api_key: API密钥（本地服务通常不需要）
            max_context_tokens: 上下文窗口大小
            timeout: 请求超时时间(秒)
            max_retries: 最大重试次数
            system_prompt: 附加的系统提示词（可选）
            default_config: 默认生成参数
            extra_config: provider 额外配置（dict），内部转换为 OpenAICompatibleExtraConfig
            client: httpx 客户端（可选，默认使用全局客户端）
        """
        if not base_url:
            logger.error("Configuration validation failed: openai_compatible requires base_url")
            raise LLMConfigError("openai_compatible requires base_url")

        self.name = model_name
        self.model_name = model_name
        self.base_url = base_url
        self.api_key = api_key
        self.max_context_tokens = max_context_tokens
        self.timeout = timeout
        self.max_retries = max_retries
        self.system_prompt = system_prompt
        self.default_config = default_config or GenerationConfig()
        self.extra_config = OpenAICompatibleExtraConfig.model_validate(extra_config or {})
        self._client = client

        logger.info(f"Initialized language model: openai_compatible/{self.model_name}, base_url={self.base_url}")

    # ========== 请求构建 ==========

    def get_httpx_client(self) -> httpx.AsyncClient:
        """获取 httpx client，未显式传入时使用全局实例"""
        if self._client is not None:
            return self._client

        from config.main import local_configs

        return local_configs.extensions.httpx.instance

    def build_endpoint_url(self) -> str:
        """构建 API 端点 URL: {base_url}{endpoint}"""
        base_url = self.base_url.rstrip("/")
        endpoint = self.extra_config.endpoint
        if not endpoint.startswith("/"):
            endpoint = "/" + endpoint
        return f"{base_url}{endpoint}"

    def build_request_headers(self) -> dict[str, str]:
        """构建完整的请求头"""
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            auth_type = self.extra_config.auth_type
            value = f"{auth_type} {self.api_key}" if auth_type else self.api_key
            headers[self.extra_config.auth_header] = value
        headers.update(self.extra_config.headers)
        return headers

    def _build_request_body(self, prompt: str, config: GenerationConfig | None, stream: bool = False) -> dict:
        """
        构建请求体

        Args:
            prompt: 提示词
            config: 生成参数
            stream: 是否流式

        Returns:
            OpenAI 兼容请求体
        """
        merged = self.default_config.merge(config)

        messages = []
        if self.system_prompt:
            messages.append(ChatMessage(role="system", content=self.system_prompt))
        messages.append(ChatMessage(role="user", content=prompt))

        body: dict[str, Any] = {
            "model": self.model_name,
            "messages": [msg.model_dump() for msg in messages],
            "stream": stream,
        }

        if merged.temperature is not None:
            body["temperature"] = merged.temperature
        if merged.top_p is not None:
            body["top_p"] = merged.top_p
        if merged.max_tokens is not None:
            body["max_tokens"] = merged.max_tokens
        if merged.seed is not None:
            body["seed"] = merged.seed
        if merged.stop_sequences:
            body["stop"] = merged.stop_sequences
        # llama.cpp / vLLM 扩展字段
        if merged.top_k is not None:
            body["top_k"] = merged.top_k
        if merged.repeat_penalty is not None:
            body["repeat_penalty"] = merged.repeat_penalty

        body.update(self.extra_config.extra_body)
        return body

    # ========== 重试逻辑（配置驱动） ==========

    def should_retry(self, status_code: int, attempt: int) -> bool:
        """判断是否应该重试"""
        if attempt >= self.max_retries:
            return False
        return status_code in self.extra_config.retry_on_status_codes

    def get_retry_delay(self, attempt: int) -> float:
        """获取重试延迟"""
        base = self.extra_config.retry_base_delay
        strategy = self.extra_config.retry_strategy
        if strategy == "exponential":
            delay = base * (2**attempt)
        elif strategy == "linear":
            delay = base * (attempt + 1)
        else:  # constant
            delay = base

        logger.debug(f"Retry delay calculated: strategy={strategy}, attempt={attempt}, delay={delay}s")
        return delay

    # ========== 核心方法 ==========

    async def generate(self, prompt: str, config: GenerationConfig | None = None) -> ModelResponse:
        """
        发起生成请求（非流式）

        Args:
            prompt: 提示词
            config: 生成参数

        Returns:
            模型响应

        Raises:
            LLMAPIError: 服务返回错误或重试耗尽
            LLMTimeoutError: 请求超时且重试耗尽
        """
        client = self.get_httpx_client()
        url = self.build_endpoint_url()
        headers = self.build_request_headers()
        body = self._build_request_body(prompt, config)

        logger.debug(f"openai_compatible generate - model: {self.model_name}, prompt: {truncate_content(prompt)}")

        start = time.perf_counter()
        for attempt in range(self.max_retries + 1):
            try:
                response = await client.post(url, json=body, headers=headers, timeout=self.timeout)
            except httpx.TimeoutException as e:
                if attempt >= self.max_retries:
                    logger.error(f"openai_compatible request timeout: {e}")
                    raise LLMTimeoutError(f"Request timed out: {e}") from e
                delay = self.get_retry_delay(attempt)
                logger.warning(f"openai_compatible request timeout, retry in {delay}s ({attempt + 1}/{self.max_retries})")
                await asyncio.sleep(delay)
                continue
            except httpx.TransportError as e:
                if attempt >= self.max_retries:
                    logger.error(f"openai_compatible connection error: {e}")
                    raise LLMAPIError(f"Connection error: {e}") from e
                delay = self.get_retry_delay(attempt)
                logger.warning(f"openai_compatible connection error, retry in {delay}s ({attempt + 1}/{self.max_retries})")
                await asyncio.sleep(delay)
                continue

            if response.status_code == 200:
                parsed = self._parse_response(response.json())
                parsed.processing_time_ms = int((time.perf_counter() - start) * 1000)
                logger.debug(
                    f"openai_compatible response - text: {truncate_content(parsed.text)}, "
                    f"finish_reason: {parsed.finish_reason}, elapsed: {parsed.processing_time_ms}ms"
                )
                return parsed

            error_message = self._extract_error_message(response)
            if self.should_retry(response.status_code, attempt):
                delay = self.get_retry_delay(attempt)
                logger.warning(
                    f"openai_compatible request failed ({response.status_code}: {error_message}), "
                    f"retry in {delay}s ({attempt + 1}/{self.max_retries})"
                )
                await asyncio.sleep(delay)
                continue

            logger.error(f"openai_compatible API error: {error_message} (status: {response.status_code})")
            raise LLMAPIError(f"API error: {error_message}", status_code=response.status_code)

        raise LLMAPIError("API request failed, max retries reached")

    async def stream(self, prompt: str, config: GenerationConfig | None = None) -> AsyncIterator[str]:
        """
        流式生成（SSE）

        Args:
            prompt: 提示词
            config: 生成参数

        Yields:
            文本块
        """
        client = self.get_httpx_client()
        url = self.build_endpoint_url()
        headers = self.build_request_headers()
        body = self._build_request_body(prompt, config, stream=True)

        logger.debug(f"openai_compatible stream - model: {self.model_name}, prompt: {truncate_content(prompt)}")

        chunk_count = 0
        try:
            async with client.stream("POST", url, json=body, headers=headers, timeout=self.timeout) as response:
                if response.status_code != 200:
                    await response.aread()
                    error_message = self._extract_error_message(response)
                    raise LLMAPIError(f"API error: {error_message}", status_code=response.status_code)

                async for line in response.aiter_lines():
                    if not line.startswith("data: "):
                        continue
                    data = line[6:]
                    if data == "[DONE]":
                        break

                    try:
                        chunk_data = json.loads(data)
                    except json.JSONDecodeError:
                        continue

                    content = self._extract_delta_content(chunk_data)
                    if content:
                        chunk_count += 1
                        yield content
        except httpx.TimeoutException as e:
            logger.error(f"openai_compatible stream timeout: {e}")
            raise LLMTimeoutError(f"Stream timed out: {e}") from e
        except httpx.TransportError as e:
            logger.error(f"openai_compatible stream interrupted: {e}")
            raise LLMStreamingError(f"Stream interrupted: {e}") from e

        logger.debug(f"openai_compatible stream completed - total chunks: {chunk_count}")

    # ========== 响应解析 ==========

    def _parse_response(self, response_data: dict[str, Any]) -> ModelResponse:
        """解析非流式响应"""
        choices = response_data.get("choices") or []
        if not choices:
            logger.error(f"Response has no choices: {response_data}")
            raise LLMAPIError("API response has no choices")

        choice = choices[0]
        content = (choice.get("message") or {}).get("content") or ""

        usage_data = response_data.get("usage")
        usage = None
        if usage_data:
            usage = TokenUsage(
                prompt_tokens=usage_data.get("prompt_tokens"),
                completion_tokens=usage_data.get("completion_tokens"),
                total_tokens=usage_data.get("total_tokens"),
            )

        return ModelResponse(text=content, usage=usage, finish_reason=choice.get("finish_reason"))

    def _extract_delta_content(self, chunk_data: dict[str, Any]) -> str:
        """从流式块中提取增量文本"""
        choices = chunk_data.get("choices") or []
        if not choices:
            return ""
        return (choices[0].get("delta") or {}).get("content") or ""

    def _extract_error_message(self, response: httpx.Response) -> str:
        """从错误响应中提取错误信息"""
        try:
            data = response.json()
        except (json.JSONDecodeError, ValueError):
            return response.text or "Unknown error"

        error = data.get("error") if isinstance(data, dict) else None
        if isinstance(error, dict):
            return error.get("message") or str(error)
        if isinstance(error, str):
            return error
        return str(data)


__all__ = [
    "OpenAICompatibleModel",
]
