"""
校对 Chain
"""

from ext.llm.chain.base import ChainInput
from ext.llm.chain.builtin.base import BuiltinChain
from ext.llm.chain.builtin.prompts import PROOFREAD_PROMPT, strip_preamble
from ext.llm.chain.builtin.types import ProofreadResult
from ext.llm.types import ModelResponse


class ProofreadChain(BuiltinChain):
    """修正拼写、语法与标点

    只返回修正后的全文，不做逐条 diff（corrections 为空列表）
    """

    output_type = ProofreadResult

    def build_prompt(self, input: ChainInput) -> str:
        return PROOFREAD_PROMPT.format(text=input.text)

    def parse(self, input: ChainInput, response: ModelResponse) -> tuple[ProofreadResult, str]:
        corrected = strip_preamble(response.text)
        result = ProofreadResult(
            corrected_text=corrected,
            corrections=[],
            has_corrections=corrected != input.text,
        )
        return result, corrected
