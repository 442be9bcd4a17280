"""
测试 OpenAI 兼容 Embedding provider

使用 httpx.MockTransport 模拟 /v1/embeddings 接口
"""

import json

import httpx
import pytest

from ext.embedding.exceptions import EmbeddingAPIError, EmbeddingConfigError
from ext.embedding.providers.openai_compatible import OpenAICompatibleEmbeddingModel


def make_model(handler, **kwargs) -> OpenAICompatibleEmbeddingModel:
    return OpenAICompatibleEmbeddingModel(
        model_name_or_path="nomic-embed-text",
        dimension=3,
        base_url="http://127.0.0.1:8081",
        retry_delay=0,
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        **kwargs,
    )


class TestOpenAICompatibleEmbeddingModel:
    """测试 OpenAI 兼容 embedding"""

    def test_base_url_required(self):
        with pytest.raises(EmbeddingConfigError):
            OpenAICompatibleEmbeddingModel(model_name_or_path="x", dimension=3)

    @pytest.mark.asyncio
    async def test_embed_batch_restores_order(self):
        """测试按 index 恢复输入顺序"""
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["url"] = str(request.url)
            captured["headers"] = request.headers
            captured["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "data": [
                        {"index": 1, "embedding": [0.0, 1.0, 0.0]},
                        {"index": 0, "embedding": [1.0, 0.0, 0.0]},
                    ]
                },
            )

        model = make_model(handler, api_key="token")
        results = await model.embed_batch(["first", "second"])

        assert [r.embedding for r in results] == [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]]
        assert [r.text for r in results] == ["first", "second"]
        assert captured["url"] == "http://127.0.0.1:8081/v1/embeddings"
        assert captured["headers"]["Authorization"] == "Bearer token"
        assert captured["body"] == {"input": ["first", "second"], "model": "nomic-embed-text"}
        print(f"✓ 返回 {len(results)} 条向量")

    @pytest.mark.asyncio
    async def test_split_into_batches(self):
        """测试超过 max_batch_size 时拆分请求"""
        sizes = []

        def handler(request: httpx.Request) -> httpx.Response:
            texts = json.loads(request.content)["input"]
            sizes.append(len(texts))
            return httpx.Response(200, json={"data": [{"index": i, "embedding": [1.0, 0.0, 0.0]} for i in range(len(texts))]})

        results = await make_model(handler, max_batch_size=2).embed_batch(["a", "b", "c"])
        assert sizes == [2, 1]
        assert [r.index for r in results] == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_retry_then_success(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(503, text="warming up")
            return httpx.Response(200, json={"data": [{"index": 0, "embedding": [0.0, 0.0, 1.0]}]})

        result = await make_model(handler, max_retries=1).embed("x")
        assert result.embedding == [0.0, 0.0, 1.0]
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_auth_error_not_retried(self):
        """测试认证错误直接抛出"""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(401, text="unauthorized")

        with pytest.raises(EmbeddingAPIError) as exc_info:
            await make_model(handler, max_retries=3).embed("x")
        assert exc_info.value.status_code == 401
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_count_mismatch(self):
        model = make_model(lambda request: httpx.Response(200, json={"data": []}))
        with pytest.raises(EmbeddingAPIError):
            await model.embed_batch(["a", "b"])

    @pytest.mark.asyncio
    async def test_custom_fields(self):
        """测试配置驱动的字段名"""

        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            assert body == {"texts": ["a"], "model_id": "nomic-embed-text", "encoding_format": "float"}
            return httpx.Response(200, json={"results": [{"index": 0, "vector": [0.5, 0.5, 0.0]}]})

        model = make_model(
            handler,
            extra_config={
                "input_field": "texts",
                "model_field": "model_id",
                "encoding_format": "float",
                "embedding_field_path": "results",
                "embedding_value_field": "vector",
                "unknown_option": True,
            },
        )
        assert (await model.embed("a")).embedding == [0.5, 0.5, 0.0]
