"""
测试 RAG 问答引擎与 RAGChain
"""

import pytest

from ext.llm.chain.base import ChainInput
from ext.rag.exceptions import NoRelevantChunksError
from ext.rag.query_engine import DEFAULT_RAG_SYSTEM_PROMPT, RAGChain, RAGQueryEngine, build_context
from ext.rag.types import RAGQueryResult, RAGSourceChunk, RAGStreamEventTypeEnum

PASTA = (
    "Pasta should boil for ten minutes. Salt the water generously before adding pasta. "
    "Drain the pasta and keep a cup of the cooking water."
)


@pytest.fixture
async def pasta_collection(rag_manager):
    collection = await rag_manager.create_collection("Recipes")
    await rag_manager.index_document(collection.id, "Pasta Guide", PASTA)
    return collection


def source(title: str, content: str, score: float = 0.5) -> RAGSourceChunk:
    return RAGSourceChunk(document_id="d1", document_title=title, content=content, relevance_score=score, chunk_index=0)


class TestBuildContext:
    """测试上下文拼接"""

    def test_with_citations(self):
        context = build_context([source("Pasta", "Boil ten minutes."), source("Sauce", "Use fresh tomatoes.")])
        assert context == (
            "Based on the following documents:\n\n"
            '[1] From "Pasta":\nBoil ten minutes.\n\n'
            '[2] From "Sauce":\nUse fresh tomatoes.\n\n'
        )

    def test_without_citations(self):
        context = build_context([source("Pasta", "Boil ten minutes.")], include_citations=False)
        assert context == "Based on the following documents:\n\nBoil ten minutes.\n\n"


class TestRAGQueryEngine:
    """测试问答"""

    @pytest.mark.asyncio
    async def test_query(self, rag_manager, pasta_collection, scripted_model):
        """测试 prompt 含上下文与来源，confidence 为平均相关度"""
        model = scripted_model("  About ten minutes.  ")
        engine = RAGQueryEngine(rag_manager, model, top_k=3)

        result = await engine.query("How long should pasta boil?", pasta_collection.id)

        assert result.answer == "About ten minutes."
        assert result.retrieved_count == len(result.sources) > 0
        assert result.confidence == pytest.approx(
            sum(s.relevance_score for s in result.sources) / len(result.sources)
        )
        assert result.processing_time_ms >= 0

        prompt = model.prompts[0]
        assert prompt.startswith(DEFAULT_RAG_SYSTEM_PROMPT)
        assert '[1] From "Pasta Guide":' in prompt
        assert prompt.endswith("Question: How long should pasta boil?\n\nAnswer:")
        print(f"✓ 回答: {result.answer} (confidence {result.confidence:.3f})")

    @pytest.mark.asyncio
    async def test_custom_system_prompt(self, rag_manager, pasta_collection, scripted_model):
        model = scripted_model("ok")
        engine = RAGQueryEngine(rag_manager, model, system_prompt="Answer in one word.", include_citations=False)

        await engine.query("pasta", pasta_collection.id)

        assert model.prompts[0].startswith("Answer in one word.\n\nContext:\nBased on the following documents:")
        assert "From " not in model.prompts[0]

    @pytest.mark.asyncio
    async def test_no_relevant_chunks(self, rag_manager, pasta_collection, scripted_model):
        """测试检索不到片段时不调用模型"""
        model = scripted_model("unused")
        engine = RAGQueryEngine(rag_manager, model, min_relevance=1.01)

        with pytest.raises(NoRelevantChunksError):
            await engine.query("pasta", pasta_collection.id)
        assert model.prompts == []

    @pytest.mark.asyncio
    async def test_empty_collection(self, rag_manager, scripted_model):
        collection = await rag_manager.create_collection("Empty")
        with pytest.raises(NoRelevantChunksError):
            await RAGQueryEngine(rag_manager, scripted_model()).query("anything", collection.id)

    @pytest.mark.asyncio
    async def test_query_stream(self, rag_manager, pasta_collection, scripted_model):
        """测试先产出 sources 事件，再产出 token 事件"""
        engine = RAGQueryEngine(rag_manager, scripted_model("Ten minutes.", chunk_size=4))

        events = [event async for event in engine.query_stream("boil pasta", pasta_collection.id)]

        assert events[0].type == RAGStreamEventTypeEnum.sources
        assert events[0].sources
        assert all(event.type == RAGStreamEventTypeEnum.token for event in events[1:])
        assert "".join(event.token for event in events[1:]) == "Ten minutes."


class TestRAGChain:
    """测试 RAGChain"""

    @pytest.mark.asyncio
    async def test_invoke(self, rag_manager, pasta_collection, scripted_model):
        chain = RAGChain(RAGQueryEngine(rag_manager, scripted_model("Ten minutes.")), pasta_collection.id)

        output = await chain.ainvoke(ChainInput(text="How long to boil pasta?", metadata={"user": "u1"}))

        assert isinstance(output.value, RAGQueryResult)
        assert output.text == "Ten minutes."
        assert output.metadata["user"] == "u1"
        assert output.metadata["rag.collection_id"] == pasta_collection.id
        assert output.metadata["rag.retrieved_count"] == str(output.value.retrieved_count)
        assert chain.name == "RAGChain"

    @pytest.mark.asyncio
    async def test_arun_returns_result(self, rag_manager, pasta_collection, scripted_model):
        chain = RAGChain(RAGQueryEngine(rag_manager, scripted_model("Ten minutes.")), pasta_collection.id)
        result = await chain.arun("boil pasta")
        assert isinstance(result, RAGQueryResult)
        assert result.answer == "Ten minutes."
