"""
LLM 类型定义

定义模型调用相关的统一 Pydantic 模型
"""

from typing import Any, Literal
from pydantic import BaseModel, Field

from core.types import StrEnum


class LLMModelTypeEnum(StrEnum):
    """模型 provider 类型"""

    openai_compatible = ("openai_compatible", "OpenAI 兼容接口（llama.cpp / Ollama / vLLM）")


class GenerationConfig(BaseModel):
    """生成参数

    所有字段均为可选，None 表示由模型使用自身默认值
    """

    temperature: float | None = Field(default=None, ge=0.0, le=2.0, description="温度参数")
    top_k: int | None = Field(default=None, ge=1, description="top-k sampling参数")
    top_p: float | None = Field(default=None, ge=0.0, le=1.0, description="nucleus sampling参数")
    max_tokens: int | None = Field(default=None, ge=1, description="最大输出token数")
    repeat_penalty: float | None = Field(default=None, ge=0.0, description="重复惩罚")
    seed: int | None = Field(default=None, description="随机种子")
    stop_sequences: list[str] | None = Field(default=None, description="停止序列")

    @classmethod
    def structured(cls) -> "GenerationConfig":
        """低温度、小 top_k，适合结构化/确定性输出"""
        return cls(temperature=0.2, top_k=16)

    @classmethod
    def creative(cls) -> "GenerationConfig":
        """高温度，适合创意文本"""
        return cls(temperature=0.8, top_k=40)

    @classmethod
    def conversational(cls) -> "GenerationConfig":
        """对话场景的平衡参数"""
        return cls(temperature=0.7, top_k=40)

    def merge(self, other: "GenerationConfig | None") -> "GenerationConfig":
        """合并配置，other 中非 None 的字段覆盖当前值"""
        if other is None:
            return self
        return self.model_copy(update=other.model_dump(exclude_none=True))


class TokenUsage(BaseModel):
    """Token 使用统计"""

    prompt_tokens: int | None = Field(default=None, description="输入token数")
    completion_tokens: int | None = Field(default=None, description="输出token数")
    total_tokens: int | None = Field(default=None, description="总token数")


class ModelResponse(BaseModel):
    """模型响应"""

    text: str = Field(description="生成的文本")
    processing_time_ms: int | None = Field(default=None, description="处理耗时（毫秒）")
    usage: TokenUsage | None = Field(default=None, description="Token使用统计")
    finish_reason: str | None = Field(default=None, description="结束原因")


class MemoryEntry(BaseModel):
    """对话历史条目"""

    role: Literal["user", "assistant", "system"] = Field(description="消息角色")
    content: str = Field(description="消息内容")


class ChatMessage(BaseModel):
    """OpenAI 兼容接口的聊天消息"""

    role: Literal["system", "user", "assistant"] = Field(description="消息角色")
    content: str = Field(description="消息内容")


class OpenAICompatibleExtraConfig(BaseModel):
    """OpenAI 兼容 provider 的额外配置

    通过配置驱动接口差异
    """

    endpoint: str = Field(default="/v1/chat/completions", description="API端点路径")
    auth_header: str = Field(default="Authorization", description="认证头名称")
    auth_type: str = Field(default="Bearer", description="认证类型")
    headers: dict[str, str] = Field(default_factory=dict, description="额外请求头")
    retry_on_status_codes: list[int] = Field(default_factory=lambda: [429, 500, 502, 503], description="需要重试的状态码")
    retry_strategy: Literal["exponential", "linear", "constant"] = Field(default="exponential", description="重试策略")
    retry_base_delay: float = Field(default=0.5, ge=0.0, description="重试基础延迟（秒）")
    extra_body: dict[str, Any] = Field(default_factory=dict, description="附加到请求体的字段")


__all__ = [
    "LLMModelTypeEnum",
    "GenerationConfig",
    "TokenUsage",
    "ModelResponse",
    "MemoryEntry",
    "ChatMessage",
    "OpenAICompatibleExtraConfig",
]
