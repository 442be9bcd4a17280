"""
摘要 Chain
"""

from ext.llm.base import BaseLanguageModel
from ext.llm.chain.base import ChainInput
from ext.llm.chain.builtin.base import BuiltinChain
from ext.llm.chain.builtin.prompts import SUMMARIZE_PROMPT, strip_preamble
from ext.llm.chain.builtin.types import SummarizeResult
from ext.llm.types import GenerationConfig, ModelResponse

SUMMARIZE_CONFIDENCE = 0.85


class SummarizeChain(BuiltinChain):
    """把文本摘要为固定数量的要点（每条以 "* " 开头）"""

    output_type = SummarizeResult

    def __init__(
        self,
        model: BaseLanguageModel,
        bullet_count: int = 1,
        input_type: str = "text",
        config: GenerationConfig | None = None,
    ):
        super().__init__(model, config)
        self.bullet_count = max(1, bullet_count)
        self.input_type = input_type

    def build_prompt(self, input: ChainInput) -> str:
        return SUMMARIZE_PROMPT.format(
            input_type_hint=self.input_type,
            bullet_count=self.bullet_count,
            text=input.text,
        )

    def parse(self, input: ChainInput, response: ModelResponse) -> tuple[SummarizeResult, str]:
        summary = strip_preamble(response.text)
        result = SummarizeResult(
            summary=summary,
            original_length=len(input.text),
            summary_length=len(summary),
            confidence=SUMMARIZE_CONFIDENCE,
        )
        return result, summary
