"""
翻译 Chain
"""

from ext.llm.base import BaseLanguageModel
from ext.llm.chain.base import ChainInput
from ext.llm.chain.builtin.base import BuiltinChain
from ext.llm.chain.builtin.prompts import TRANSLATE_PROMPT, language_name, strip_preamble
from ext.llm.chain.builtin.types import TranslateResult
from ext.llm.types import GenerationConfig, ModelResponse

TRANSLATE_CONFIDENCE = 0.90


class TranslateChain(BuiltinChain):
    """翻译

    语言以代码给出（如 "en"、"ko"、"zh-Hans"），写入 prompt 时转换为英文语言名
    """

    output_type = TranslateResult

    def __init__(
        self,
        model: BaseLanguageModel,
        target_language: str,
        source_language: str = "en",
        config: GenerationConfig | None = None,
    ):
        super().__init__(model, config)
        self.target_language = target_language
        self.source_language = source_language

    def build_prompt(self, input: ChainInput) -> str:
        return TRANSLATE_PROMPT.format(
            source_language=language_name(self.source_language),
            target_language=language_name(self.target_language),
            text=input.text,
        )

    def parse(self, input: ChainInput, response: ModelResponse) -> tuple[TranslateResult, str]:
        translated = strip_preamble(response.text)
        result = TranslateResult(
            translated_text=translated,
            source_language=self.source_language,
            target_language=self.target_language,
            confidence=TRANSLATE_CONFIDENCE,
        )
        return result, translated
