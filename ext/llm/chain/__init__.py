"""
Chain 模块

面向端侧小模型的 Chain 组合、Agent、记忆与 Guardrail

核心特性：
- 统一的 Runnable 接口与类型化的 Chain
- Prompt Template 与输出解析器
- Chain 组合（顺序、并行、条件，pipe 操作符）
- 内置 Chain 与 Pipeline DSL
- Memory 管理（缓冲、摘要）
- Guardrail、执行器与会话
- Tool 定义与 ReAct 风格的 Agent
"""

# 核心基础
from ext.llm.chain.base import Chain, ChainInput, ChainOutput, Runnable, RunnablePassthrough

# LLM
from ext.llm.chain.llm import LLM

# Prompt
from ext.llm.chain.prompt import PromptTemplate

# Output Parser
from ext.llm.chain.output_parser import (
    BaseOutputParser,
    JsonOutputParser,
    ListOutputParser,
    StrOutputParser,
)

# Chain
from ext.llm.chain.chain import (
    ConditionalChain,
    ParallelChain,
    RunnableSequence,
    SequentialChain,
)
from ext.llm.chain.model_chain import ModelChain

# Memory
from ext.llm.chain.memory import BaseMemory, BufferMemory, SummaryMemory

# Guardrail
from ext.llm.chain.guardrail import (
    BaseGuardrail,
    ContentFilterGuardrail,
    GuardedChain,
    GuardrailResult,
    GuardrailStatusEnum,
    InputLengthGuardrail,
)

# Executor / Session
from ext.llm.chain.executor import ChainExecutor, ExecutionRecord
from ext.llm.chain.session import Session

# Tool
from ext.llm.chain.tool import BaseTool, FunctionTool, LocalSearchTool, tool

# Agent
from ext.llm.chain.agent import FINAL_ANSWER, Agent, AgentConfig, AgentResult, AgentStep

# Pipeline
from ext.llm.chain.pipeline import (
    Classify,
    Extract,
    Pipeline,
    PipelineStep,
    Proofread,
    Rewrite,
    Summarize,
    Translate,
)

# 异常
from ext.llm.chain.exceptions import (
    AgentError,
    ChainError,
    ChainExecutionError,
    EmptyPipelineError,
    GuardrailBlockedError,
    InvalidInputError,
    MaxStepsExceededError,
    MissingBranchError,
    OutputParserError,
    ToolError,
    ToolExecutionError,
    TypeMismatchError,
)

__all__ = [
    # 核心基础
    "Runnable",
    "RunnablePassthrough",
    "Chain",
    "ChainInput",
    "ChainOutput",
    # LLM
    "LLM",
    # Prompt
    "PromptTemplate",
    # Output Parser
    "BaseOutputParser",
    "StrOutputParser",
    "ListOutputParser",
    "JsonOutputParser",
    # Chain
    "RunnableSequence",
    "SequentialChain",
    "ParallelChain",
    "ConditionalChain",
    "ModelChain",
    # Memory
    "BaseMemory",
    "BufferMemory",
    "SummaryMemory",
    # Guardrail
    "GuardrailStatusEnum",
    "GuardrailResult",
    "BaseGuardrail",
    "InputLengthGuardrail",
    "ContentFilterGuardrail",
    "GuardedChain",
    # Executor / Session
    "ExecutionRecord",
    "ChainExecutor",
    "Session",
    # Tool
    "BaseTool",
    "FunctionTool",
    "LocalSearchTool",
    "tool",
    # Agent
    "FINAL_ANSWER",
    "Agent",
    "AgentConfig",
    "AgentStep",
    "AgentResult",
    # Pipeline
    "PipelineStep",
    "Summarize",
    "Classify",
    "Extract",
    "Translate",
    "Rewrite",
    "Proofread",
    "Pipeline",
    # 异常
    "ChainError",
    "InvalidInputError",
    "MissingBranchError",
    "GuardrailBlockedError",
    "EmptyPipelineError",
    "ChainExecutionError",
    "TypeMismatchError",
    "OutputParserError",
    "AgentError",
    "MaxStepsExceededError",
    "ToolError",
    "ToolExecutionError",
]
