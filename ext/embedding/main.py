from typing import Any

from pydantic import Field

from config.default import InstanceExtensionConfig
from ext.embedding.engine import EmbeddingEngine
from ext.embedding.types import EmbeddingConfig, EmbeddingModelTypeEnum


class EmbeddingModelConfig(InstanceExtensionConfig[EmbeddingEngine]):
    """Embedding 配置

    模型字段交给 EmbeddingModelFactory，引擎限制字段组成 EmbeddingConfig
    """

    type: EmbeddingModelTypeEnum = EmbeddingModelTypeEnum.hashing
    model_name: str = "hashing-512"
    dimension: int = Field(default=512, ge=1)
    base_url: str | None = None
    api_key: str | None = None
    timeout: float = Field(default=60.0, gt=0)
    max_retries: int = Field(default=2, ge=0)
    provider_batch_size: int = Field(default=32, ge=1)
    extra_config: dict[str, Any] = Field(default_factory=dict)

    language: str = "en"
    auto_detect: bool = True
    max_text_length: int = Field(default=10000, ge=1)
    max_batch_size: int = Field(default=100, ge=1)

    @property
    def engine_config(self) -> EmbeddingConfig:
        return EmbeddingConfig(
            language=self.language,
            auto_detect=self.auto_detect,
            max_text_length=self.max_text_length,
            max_batch_size=self.max_batch_size,
        )

    @property
    def instance(self) -> EmbeddingEngine:
        # 导入 providers 以完成注册
        import ext.embedding.providers  # noqa: F401
        from ext.embedding.factory import EmbeddingModelFactory

        return EmbeddingEngine(EmbeddingModelFactory.create(self), self.engine_config)
