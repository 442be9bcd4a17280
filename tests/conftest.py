import os

os.environ.setdefault("environment", "test")

from collections.abc import AsyncIterator  # noqa: E402

import pytest  # noqa: E402

from ext.embedding.engine import EmbeddingEngine  # noqa: E402
from ext.embedding.providers.hashing import HashingEmbeddingModel  # noqa: E402
from ext.llm.base import BaseLanguageModel  # noqa: E402
from ext.llm.exceptions import LLMAPIError  # noqa: E402
from ext.llm.types import GenerationConfig, ModelResponse  # noqa: E402
from ext.rag.chunker import DocumentChunker  # noqa: E402
from ext.rag.collection_manager import RAGCollectionManager  # noqa: E402
from ext.rag.types import ChunkingConfig  # noqa: E402
from ext.rag.vector_store import MEMORY_DB, VectorStore  # noqa: E402


class ScriptedModel(BaseLanguageModel):
    """按顺序返回预设回复的模型，记录收到的 prompt

    回复用完后重复最后一条；回复为 Exception 实例时直接抛出
    """

    name = "scripted"

    def __init__(self, responses: list[str | Exception] | None = None, chunk_size: int = 0):
        self.responses = list(responses or ["ok"])
        self.chunk_size = chunk_size
        self.prompts: list[str] = []
        self.configs: list[GenerationConfig | None] = []

    def next_response(self) -> str:
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response

    async def generate(self, prompt: str, config: GenerationConfig | None = None) -> ModelResponse:
        self.prompts.append(prompt)
        self.configs.append(config)
        return ModelResponse(text=self.next_response(), processing_time_ms=1)

    async def stream(self, prompt: str, config: GenerationConfig | None = None) -> AsyncIterator[str]:
        if not self.chunk_size:
            async for chunk in super().stream(prompt, config):
                yield chunk
            return

        self.prompts.append(prompt)
        self.configs.append(config)
        text = self.next_response()
        for i in range(0, len(text), self.chunk_size):
            yield text[i : i + self.chunk_size]


@pytest.fixture
def scripted_model():
    """ScriptedModel 工厂: scripted_model("a", "b", chunk_size=2)"""

    def factory(*responses: str | Exception, chunk_size: int = 0) -> ScriptedModel:
        return ScriptedModel(list(responses) or None, chunk_size=chunk_size)

    return factory


@pytest.fixture
def failing_model():
    """每次调用都失败的模型"""
    return ScriptedModel([LLMAPIError("model unavailable", status_code=503)])


@pytest.fixture
def hashing_engine() -> EmbeddingEngine:
    return EmbeddingEngine(HashingEmbeddingModel(dimension=256))


@pytest.fixture
async def vector_store():
    async with VectorStore(MEMORY_DB) as store:
        yield store


@pytest.fixture
async def rag_manager(hashing_engine):
    """内存向量库上的集合管理器，使用较小的分块便于测试"""
    chunker = DocumentChunker(ChunkingConfig(target_chunk_size=120, chunk_overlap=20, min_chunk_size=30))
    manager = RAGCollectionManager(VectorStore(MEMORY_DB), hashing_engine, chunker)
    await manager.initialize()
    yield manager
    await manager.shutdown()
