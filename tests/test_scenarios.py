"""
端到端场景

确定性的 ScriptedModel 与特征哈希 embedding 串起 Chain / RAG / Agent 的完整路径
"""

import pytest

from ext.llm.chain import Agent, AgentConfig, ChainInput, LocalSearchTool, SequentialChain
from ext.llm.chain.builtin import ClassifyChain, ProofreadChain, RewriteChain, RewriteOutputType
from ext.llm.chain.builtin.types import ClassifyResult

DOCUMENTS = {
    "Cooking Recipe": "To cook pasta, boil salted water and add the pasta. Cook it for ten minutes, then drain.",
    "Car Maintenance": "Change the engine oil every five thousand miles and check tire pressure monthly.",
    "Gardening Tips": "Water tomato plants deeply twice a week and add compost every spring.",
}


class TestScenarios:
    """端到端场景"""

    @pytest.mark.asyncio
    async def test_classify_single_label(self, scripted_model):
        """模型只回答类别名时得到唯一的满分分类"""
        chain = ClassifyChain(scripted_model("positive"), categories=["positive", "negative"])

        result = await chain.arun("Great product!")

        assert isinstance(result, ClassifyResult)
        assert result.top_classification.label == "positive"
        assert result.top_classification.score == 1.0
        assert len(result.classifications) == 1

    @pytest.mark.asyncio
    async def test_proofread_then_rewrite(self, scripted_model):
        model = scripted_model("Corrected text", "Professionally written text")
        chain = SequentialChain([ProofreadChain(model), RewriteChain(model, style=RewriteOutputType.professional)])

        output = await chain.ainvoke(ChainInput(text="teh text"))

        assert output.text == "Professionally written text"
        assert "Corrected text" in model.prompts[1]

    @pytest.mark.asyncio
    async def test_rag_top_hit(self, rag_manager):
        """三篇主题不同的文档中检索烹饪问题"""
        collection = await rag_manager.create_collection("Household")
        for title, content in DOCUMENTS.items():
            await rag_manager.index_document(collection.id, title, content)

        chunks = await rag_manager.search("How do I cook pasta?", collection.id)

        assert chunks
        assert chunks[0].document_title == "Cooking Recipe"
        print(f"✓ 最相关文档: {chunks[0].document_title} ({chunks[0].relevance_score:.3f})")

    @pytest.mark.asyncio
    async def test_agent_terminates_without_matches(self, scripted_model):
        """检索不到内容时 Agent 仍在 max_steps 内结束并给出非空答案"""
        model = scripted_model("Thought: search again\nAction: local_search\nInput: quantum chromodynamics")
        agent = Agent(model, AgentConfig(max_steps=3, tools=[LocalSearchTool(list(DOCUMENTS.values()))]))

        result = await agent.arun("Explain quantum chromodynamics")

        assert result.answer
        assert len(result.steps) <= 3
        assert result.total_steps == 3
