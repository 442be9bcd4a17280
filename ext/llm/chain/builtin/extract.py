"""
实体抽取 Chain
"""

from ext.llm.base import BaseLanguageModel
from ext.llm.chain.base import ChainInput
from ext.llm.chain.builtin.base import BuiltinChain
from ext.llm.chain.builtin.prompts import EXTRACT_PROMPT
from ext.llm.chain.builtin.types import Entity, ExtractResult
from ext.llm.types import GenerationConfig, ModelResponse

DEFAULT_ENTITY_TYPES = ["person", "location", "organization", "date"]

TYPED_ENTITY_CONFIDENCE = 0.9
UNTYPED_ENTITY_CONFIDENCE = 0.8


class ExtractChain(BuiltinChain):
    """从文本中抽取实体，期望模型每行输出 "type: value" """

    output_type = ExtractResult

    def __init__(
        self,
        model: BaseLanguageModel,
        entity_types: list[str] | None = None,
        config: GenerationConfig | None = None,
    ):
        super().__init__(model, config)
        self.entity_types = list(entity_types or DEFAULT_ENTITY_TYPES)

    def build_prompt(self, input: ChainInput) -> str:
        return EXTRACT_PROMPT.format(entity_types=", ".join(self.entity_types), text=input.text)

    def parse(self, input: ChainInput, response: ModelResponse) -> tuple[ExtractResult, str]:
        return ExtractResult(entities=self.parse_entities(response.text)), response.text.strip()

    @staticmethod
    def parse_entities(text: str) -> list[Entity]:
        entities: list[Entity] = []
        for line in text.splitlines():
            line = line.strip().lstrip("-*•").strip()
            if not line:
                continue
            if ":" not in line:
                entities.append(Entity(type="extracted", value=line, confidence=UNTYPED_ENTITY_CONFIDENCE))
                continue
            entity_type, value = line.split(":", 1)
            value = value.strip()
            if not value:
                continue
            entities.append(
                Entity(type=entity_type.strip().lower(), value=value, confidence=TYPED_ENTITY_CONFIDENCE)
            )
        return entities
