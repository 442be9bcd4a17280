from typing import Any

from pydantic import Field

from config.default import InstanceExtensionConfig
from ext.llm.base import BaseLanguageModel
from ext.llm.types import LLMModelTypeEnum


class LLMConfig(InstanceExtensionConfig[BaseLanguageModel]):
    """语言模型配置

    instance 通过 LLMModelFactory 创建（带缓存）
    """

    type: LLMModelTypeEnum = LLMModelTypeEnum.openai_compatible
    model_name: str
    base_url: str
    api_key: str | None = None
    max_context_tokens: int = Field(default=4096, ge=1)
    timeout: float = Field(default=60.0, gt=0)
    max_retries: int = Field(default=2, ge=0)
    system_prompt: str | None = None
    extra_config: dict[str, Any] = Field(default_factory=dict)

    @property
    def instance(self) -> BaseLanguageModel:
        # 导入 providers 以完成注册
        import ext.llm.providers  # noqa: F401
        from ext.llm.factory import LLMModelFactory

        return LLMModelFactory.create(self)
