"""
分类 Chain
"""

from ext.llm.base import BaseLanguageModel
from ext.llm.chain.base import ChainInput
from ext.llm.chain.builtin.base import BuiltinChain
from ext.llm.chain.builtin.prompts import CLASSIFY_PROMPT
from ext.llm.chain.builtin.types import Classification, ClassifyResult
from ext.llm.types import GenerationConfig, ModelResponse

DEFAULT_CATEGORIES = ["positive", "negative", "neutral"]


class ClassifyChain(BuiltinChain):
    """把文本归入给定类别

    期望模型每行输出 "category: score"。
    没有任何可解析的行时退化为：原文中出现的第一个类别得 1.0，
    仍然没有则以模型原始输出作为唯一类别。
    """

    output_type = ClassifyResult

    def __init__(
        self,
        model: BaseLanguageModel,
        categories: list[str] | None = None,
        max_results: int = 3,
        config: GenerationConfig | None = None,
    ):
        super().__init__(model, config)
        self.categories = list(categories or DEFAULT_CATEGORIES)
        self.max_results = max(1, max_results)

    def build_prompt(self, input: ChainInput) -> str:
        return CLASSIFY_PROMPT.format(categories=", ".join(self.categories), text=input.text)

    def parse(self, input: ChainInput, response: ModelResponse) -> tuple[ClassifyResult, str]:
        classifications = self.parse_classifications(response.text)
        classifications.sort(key=lambda c: c.score, reverse=True)
        classifications = classifications[: self.max_results]

        result = ClassifyResult(classifications=classifications, top_classification=classifications[0])
        return result, result.top_classification.label

    def parse_classifications(self, text: str) -> list[Classification]:
        canonical = {category.lower(): category for category in self.categories}
        classifications: list[Classification] = []

        for line in text.splitlines():
            line = line.strip().lstrip("-*").strip()
            if ":" not in line:
                continue
            label, raw_score = line.rsplit(":", 1)
            label = label.strip().lower()
            if label not in canonical:
                continue
            try:
                score = float(raw_score.strip())
            except ValueError:
                score = 0.0
            classifications.append(Classification(label=canonical[label], score=min(max(score, 0.0), 1.0)))

        if classifications:
            return classifications

        lowered = text.lower()
        for category in self.categories:
            if category.lower() in lowered:
                return [Classification(label=category, score=1.0)]

        return [Classification(label=text.strip(), score=1.0)]
