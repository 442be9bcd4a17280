"""
改写 Chain
"""

from ext.llm.base import BaseLanguageModel
from ext.llm.chain.base import ChainInput
from ext.llm.chain.builtin.base import BuiltinChain
from ext.llm.chain.builtin.prompts import REWRITE_PROMPT, strip_preamble
from ext.llm.chain.builtin.types import RewriteOutputType, RewriteResult
from ext.llm.types import GenerationConfig, ModelResponse

REWRITE_CONFIDENCE = 0.88


class RewriteChain(BuiltinChain):
    """按给定风格改写文本

    style 可以是 RewriteOutputType，也可以是它的取值字符串（如 "professional"）
    """

    output_type = RewriteResult

    def __init__(
        self,
        model: BaseLanguageModel,
        style: RewriteOutputType | str = RewriteOutputType.rephrase,
        config: GenerationConfig | None = None,
    ):
        super().__init__(model, config)
        self.style = style if isinstance(style, RewriteOutputType) else RewriteOutputType(style)

    def build_prompt(self, input: ChainInput) -> str:
        return REWRITE_PROMPT.format(style_instruction=self.style.instruction, text=input.text)

    def parse(self, input: ChainInput, response: ModelResponse) -> tuple[RewriteResult, str]:
        rewritten = strip_preamble(response.text)
        return RewriteResult(rewritten_text=rewritten, style=self.style, confidence=REWRITE_CONFIDENCE), rewritten
