"""
测试 Pipeline DSL
"""

from typing import Any, get_type_hints

import pytest

from ext.llm.chain import EmptyPipelineError, Pipeline, Rewrite, SequentialChain, Summarize, TypeMismatchError
from ext.llm.chain.builtin import RewriteOutputType, SummarizeResult, TranslateResult
from ext.llm.exceptions import LLMAPIError


class TestPipeline:
    """测试 Pipeline"""

    def test_builder_is_immutable(self, scripted_model):
        """测试构建方法返回新对象，前缀可复用"""
        base = Pipeline(scripted_model()).summarize()
        korean = base.translate(to="ko")
        japanese = base.translate(to="ja")

        assert len(base) == 1
        assert len(korean) == 2
        assert korean.steps[-1].to == "ko"
        assert japanese.steps[-1].to == "ja"
        print(f"✓ {korean!r}")

    def test_build_chain(self, scripted_model):
        chain = Pipeline(scripted_model()).proofread().rewrite(style="friendly").build_chain()
        assert isinstance(chain, SequentialChain)
        assert [c.name for c in chain.chains] == ["ProofreadChain", "RewriteChain"]

    def test_rewrite_step_coerces_style(self):
        """测试字符串风格转换为枚举"""
        assert Rewrite(style="shorten").style is RewriteOutputType.shorten

    def test_empty_pipeline(self, scripted_model):
        with pytest.raises(EmptyPipelineError):
            Pipeline(scripted_model()).build_chain()

    @pytest.mark.asyncio
    async def test_summarize_then_translate(self, scripted_model):
        """测试摘要后翻译：第二步的输入是第一步的文本"""
        model = scripted_model("* Pasta boils in ten minutes.", "* 파스타는 10분 동안 삶습니다.")
        result = await Pipeline(model).summarize().translate(to="ko").arun("A long pasta recipe...")

        assert isinstance(result, TranslateResult)
        assert result.translated_text == "* 파스타는 10분 동안 삶습니다."
        assert "* Pasta boils in ten minutes." in model.prompts[1]
        print(f"✓ Pipeline 结果: {result.translated_text}")

    @pytest.mark.asyncio
    async def test_result_type(self, scripted_model):
        """测试请求的结果类型"""
        pipeline = Pipeline(scripted_model("* ok")).then(Summarize(bullet_count=1))
        assert isinstance(await pipeline.arun("text", result_type=SummarizeResult), SummarizeResult)

        with pytest.raises(TypeMismatchError):
            await pipeline.arun("text", result_type=TranslateResult)

    @pytest.mark.asyncio
    async def test_step_failure_propagates(self, failing_model):
        with pytest.raises(LLMAPIError):
            await Pipeline(failing_model).summarize().classify().arun("text")

    @pytest.mark.asyncio
    async def test_result_type_parameter(self, scripted_model):
        """测试构建方法声明的结果类型与运行结果一致"""
        assert get_type_hints(Pipeline.summarize)["return"] == Pipeline[SummarizeResult]
        assert get_type_hints(Pipeline.translate)["return"] == Pipeline[TranslateResult]
        assert get_type_hints(Pipeline.then)["return"] == Pipeline[Any]

        pipeline: Pipeline[SummarizeResult] = Pipeline[SummarizeResult](scripted_model("* ok")).summarize()
        result = await pipeline.arun("text")

        assert isinstance(pipeline, Pipeline)
        assert isinstance(result, SummarizeResult)
