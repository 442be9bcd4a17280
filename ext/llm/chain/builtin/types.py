"""
内置 Chain 的结果类型
"""

from pydantic import BaseModel, Field

from core.types import StrEnum


class RewriteOutputType(StrEnum):
    """改写风格"""

    elaborate = ("elaborate", "to be more detailed and elaborate.")
    emojify = ("emojify", "by adding appropriate emojis throughout.")
    shorten = ("shorten", "to be more concise.")
    friendly = ("friendly", "in a friendly, casual tone.")
    professional = ("professional", "in a professional, formal tone.")
    rephrase = ("rephrase", "using different words while keeping the same meaning.")

    @property
    def instruction(self) -> str:
        """写入 prompt 的风格说明"""
        return self.label


class SummarizeResult(BaseModel):
    summary: str = Field(description="摘要")
    original_length: int = Field(description="原文字符数")
    summary_length: int = Field(description="摘要字符数")
    confidence: float | None = Field(default=None, description="置信度")


class Classification(BaseModel):
    label: str = Field(description="类别")
    score: float = Field(ge=0.0, le=1.0, description="得分")


class ClassifyResult(BaseModel):
    classifications: list[Classification] = Field(description="按得分降序排列的分类结果")
    top_classification: Classification = Field(description="得分最高的分类")


class Entity(BaseModel):
    type: str = Field(description="实体类型")
    value: str = Field(description="实体值")
    confidence: float = Field(description="置信度")


class ExtractResult(BaseModel):
    entities: list[Entity] = Field(default_factory=list, description="抽取到的实体")


class ChatResult(BaseModel):
    message: str = Field(description="回复内容")
    can_continue: bool = Field(default=True, description="是否可以继续对话")


class TranslateResult(BaseModel):
    translated_text: str = Field(description="译文")
    source_language: str = Field(description="源语言代码")
    target_language: str = Field(description="目标语言代码")
    confidence: float | None = Field(default=None, description="置信度")


class RewriteResult(BaseModel):
    rewritten_text: str = Field(description="改写结果")
    style: RewriteOutputType | None = Field(default=None, description="改写风格")
    confidence: float | None = Field(default=None, description="置信度")


class ProofreadCorrection(BaseModel):
    original: str = Field(description="原文片段")
    corrected: str = Field(description="修正后的片段")
    type: str | None = Field(default=None, description="错误类型：spelling / grammar / punctuation")


class ProofreadResult(BaseModel):
    corrected_text: str = Field(description="校对后的全文")
    corrections: list[ProofreadCorrection] = Field(default_factory=list, description="逐条修正")
    has_corrections: bool = Field(description="是否有修改")


__all__ = [
    "RewriteOutputType",
    "SummarizeResult",
    "Classification",
    "ClassifyResult",
    "Entity",
    "ExtractResult",
    "ChatResult",
    "TranslateResult",
    "RewriteResult",
    "ProofreadCorrection",
    "ProofreadResult",
]
