"""
Embedding 类型定义
"""

from typing import Any

from pydantic import BaseModel, Field

from core.types import StrEnum


class EmbeddingModelTypeEnum(StrEnum):
    """Embedding provider 类型"""

    hashing = ("hashing", "本地特征哈希（确定性，无需模型）")
    openai_compatible = ("openai_compatible", "OpenAI 兼容 /v1/embeddings 接口")


class EmbeddingResult(BaseModel):
    """单条文本的 embedding 结果（模型层）"""

    embedding: list[float] = Field(description="向量数据")
    index: int = Field(description="在原始输入中的索引")
    text: str = Field(description="原始文本")
    model: str = Field(default="", description="使用的模型标识")


class TextEmbedding(BaseModel):
    """文本及其向量（引擎层）"""

    text: str = Field(description="原始文本")
    vector: list[float] = Field(description="向量")
    language: str = Field(description="语言代码")

    @property
    def dimension(self) -> int:
        return len(self.vector)


class EmbeddingConfig(BaseModel):
    """EmbeddingEngine 配置"""

    language: str = Field(default="en", description="默认语言代码")
    auto_detect: bool = Field(default=True, description="是否根据文本自动识别语言")
    max_text_length: int = Field(default=10000, ge=1, description="单条文本最大字符数")
    max_batch_size: int = Field(default=100, ge=1, description="单次批量的最大条数")


class OpenAICompatibleEmbeddingExtraConfig(BaseModel):
    """
    OpenAI 兼容 embedding 接口的额外配置

    通过配置驱动请求体与响应解析的差异
    """

    endpoint: str = Field(default="/v1/embeddings", description="API端点路径")
    auth_header: str = Field(default="Authorization", description="认证头名称")
    auth_type: str = Field(default="Bearer", description="认证类型")

    input_field: str = Field(default="input", description="输入字段名")
    model_field: str = Field(default="model", description="模型字段名")
    encoding_format: str | None = Field(default=None, description="编码格式")

    embedding_field_path: str = Field(default="data", description="嵌入数据路径")
    embedding_value_field: str = Field(default="embedding", description="嵌入值字段名")
    index_field: str = Field(default="index", description="索引字段名")

    headers: dict[str, str] = Field(default_factory=dict, description="额外的HTTP头")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OpenAICompatibleEmbeddingExtraConfig":
        """从字典创建实例，忽略未知字段"""
        valid_data = {k: v for k, v in data.items() if k in cls.model_fields}
        return cls.model_validate(valid_data)


__all__ = [
    "EmbeddingModelTypeEnum",
    "EmbeddingResult",
    "TextEmbedding",
    "EmbeddingConfig",
    "OpenAICompatibleEmbeddingExtraConfig",
]
