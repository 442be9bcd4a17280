"""
RAG 问答

检索相关片段 -> 拼接上下文 -> 让模型基于上下文回答
"""

import time
from collections.abc import AsyncIterator
from typing import List

from loguru import logger

from ext.llm.base import BaseLanguageModel
from ext.llm.chain.base import Chain, ChainInput, ChainOutput
from ext.llm.types import GenerationConfig
from ext.rag.collection_manager import RAGCollectionManager
from ext.rag.exceptions import NoRelevantChunksError
from ext.rag.types import RAGQueryResult, RAGSourceChunk, RAGStreamEvent, RAGStreamEventTypeEnum
from util.general import elapsed_ms, truncate_content

DEFAULT_RAG_SYSTEM_PROMPT = (
    "You are a helpful AI assistant that answers questions based on the provided context.\n\n"
    "Instructions:\n"
    "- Only use information from the provided context to answer the question\n"
    "- If the context doesn't contain enough information, say so\n"
    "- Be concise and direct in your answers\n"
    "- If relevant, mention which document the information comes from\n"
    "- Do not make up information that isn't in the context"
)


def build_context(chunks: List[RAGSourceChunk], include_citations: bool = True) -> str:
    """把检索到的片段拼成上下文块"""
    context = "Based on the following documents:\n\n"
    for index, chunk in enumerate(chunks, start=1):
        if include_citations:
            context += f'[{index}] From "{chunk.document_title}":\n'
        context += f"{chunk.content}\n\n"
    return context


class RAGQueryEngine:
    """RAG 问答引擎

    使用示例:
        >>> engine = RAGQueryEngine(manager, model, top_k=3)
        >>> result = await engine.query("How long do I boil pasta?", collection.id)
        >>> result.answer, [source.document_title for source in result.sources]
    """

    def __init__(
        self,
        manager: RAGCollectionManager,
        model: BaseLanguageModel,
        top_k: int = 5,
        min_relevance: float = 0.0,
        system_prompt: str | None = None,
        include_citations: bool = True,
        config: GenerationConfig | None = None,
    ):
        """
        Args:
            manager: 集合管理器
            model: 语言模型
            top_k: 检索片段数
            min_relevance: 片段相关度下限
            system_prompt: 系统提示词，None 时使用 DEFAULT_RAG_SYSTEM_PROMPT
            include_citations: 上下文中是否标注来源文档
            config: 生成参数，默认 conversational
        """
        self.manager = manager
        self.model = model
        self.top_k = top_k
        self.min_relevance = min_relevance
        self.system_prompt = system_prompt or DEFAULT_RAG_SYSTEM_PROMPT
        self.include_citations = include_citations
        self.config = config or GenerationConfig.conversational()

    def build_prompt(self, question: str, chunks: List[RAGSourceChunk]) -> str:
        context = build_context(chunks, self.include_citations)
        return f"{self.system_prompt}\n\nContext:\n{context}\n\nQuestion: {question}\n\nAnswer:"

    async def retrieve(self, question: str, collection_id: str) -> List[RAGSourceChunk]:
        """检索相关片段

        Raises:
            NoRelevantChunksError: 没有满足 min_relevance 的片段
        """
        chunks = await self.manager.search(
            question,
            collection_id,
            top_k=self.top_k,
            min_relevance=self.min_relevance,
        )
        if not chunks:
            logger.warning(f"No relevant chunks for query: {truncate_content(question, max_length=50)}")
            raise NoRelevantChunksError(collection_id)
        return chunks

    async def query(self, question: str, collection_id: str) -> RAGQueryResult:
        """基于集合内容回答问题

        Args:
            question: 问题
            collection_id: 检索的集合

        Returns:
            RAGQueryResult，confidence 为来源相关度的平均值

        Raises:
            NoRelevantChunksError: 检索不到相关片段
        """
        start = time.perf_counter()
        logger.info(f"RAG query: {truncate_content(question, max_length=50)} in collection {collection_id}")

        chunks = await self.retrieve(question, collection_id)
        response = await self.model.generate(self.build_prompt(question, chunks), self.config)

        result = RAGQueryResult(
            answer=response.text.strip(),
            sources=chunks,
            processing_time_ms=elapsed_ms(start),
            confidence=sum(chunk.relevance_score for chunk in chunks) / len(chunks),
            retrieved_count=len(chunks),
        )
        logger.debug(f"RAG query answered - sources: {result.retrieved_count}, confidence: {result.confidence:.3f}")
        return result

    async def query_stream(self, question: str, collection_id: str) -> AsyncIterator[RAGStreamEvent]:
        """流式回答

        Yields:
            先产出一个 sources 事件，随后是逐段的 token 事件

        Raises:
            NoRelevantChunksError: 检索不到相关片段
        """
        chunks = await self.retrieve(question, collection_id)
        yield RAGStreamEvent(type=RAGStreamEventTypeEnum.sources, sources=chunks)

        async for token in self.model.stream(self.build_prompt(question, chunks), self.config):
            yield RAGStreamEvent(type=RAGStreamEventTypeEnum.token, token=token)


class RAGChain(Chain):
    """以 RAG 问答作为 Chain

    value 为 RAGQueryResult，text 为回答，可以与其它 Chain 组合
    """

    output_type = RAGQueryResult

    def __init__(self, engine: RAGQueryEngine, collection_id: str, name: str = "RAGChain"):
        self.engine = engine
        self.collection_id = collection_id
        self.name = name

    async def ainvoke(self, input: ChainInput) -> ChainOutput:
        result = await self.engine.query(input.text, self.collection_id)
        return ChainOutput(
            value=result,
            text=result.answer,
            metadata={
                **input.metadata,
                "rag.collection_id": self.collection_id,
                "rag.retrieved_count": str(result.retrieved_count),
            },
            processing_time_ms=result.processing_time_ms,
        )


__all__ = [
    "DEFAULT_RAG_SYSTEM_PROMPT",
    "build_context",
    "RAGQueryEngine",
    "RAGChain",
]
