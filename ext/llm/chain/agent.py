"""
Agent 实现

面向小模型的简化 ReAct 循环：
    Thought -> Action（工具 / Chain / FINAL_ANSWER） -> Observation -> ... -> 最终答案

每一步严格串行，步数以 max_steps 为上限。
"""

from collections.abc import AsyncIterator
from typing import List

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from ext.llm.base import BaseLanguageModel
from ext.llm.chain.base import Chain, ChainInput
from ext.llm.chain.exceptions import MaxStepsExceededError
from ext.llm.chain.memory import BaseMemory
from ext.llm.chain.tool import BaseTool
from ext.llm.types import GenerationConfig
from util.general import truncate_content

FINAL_ANSWER = "FINAL_ANSWER"

DEFAULT_AGENT_SYSTEM_PROMPT = "You are a helpful on-device AI assistant."


class AgentConfig(BaseModel):
    """Agent 配置"""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    max_steps: int = Field(default=3, ge=1, description="最大推理步数")
    tools: List[BaseTool] = Field(default_factory=list, description="可用工具")
    chains: List[Chain] = Field(default_factory=list, description="可用 Chain")
    system_prompt: str | None = Field(default=None, description="系统提示词")
    raise_on_max_steps: bool = Field(default=False, description="达到最大步数时是否抛出 MaxStepsExceededError")


class AgentStep(BaseModel):
    """推理轨迹中的一步"""

    thought: str = Field(description="推理过程")
    action: str = Field(description="选择的工具 / Chain / FINAL_ANSWER")
    input: str = Field(description="传给动作的输入")
    observation: str | None = Field(default=None, description="动作的输出，最终答案步骤为 None")


class AgentResult(BaseModel):
    """Agent 运行结果"""

    answer: str = Field(description="最终答案")
    steps: List[AgentStep] = Field(default_factory=list, description="推理轨迹")
    total_steps: int = Field(description="消耗的步数")


class ParsedAction(BaseModel):
    thought: str = ""
    action: str = FINAL_ANSWER
    input: str = ""


class _AgentRun:
    """单次运行的可变状态（每次 arun/astream 独立）"""

    def __init__(self):
        self.steps: list[AgentStep] = []
        self.answer: str | None = None
        self.total_steps = 0

    def to_result(self) -> AgentResult:
        return AgentResult(answer=self.answer or "", steps=list(self.steps), total_steps=self.total_steps)


class Agent:
    """端侧 Agent

    使用示例:
        >>> agent = Agent(model, AgentConfig(max_steps=3, tools=[LocalSearchTool(docs)]))
        >>> result = await agent.arun("What do my notes say about pasta?")
        >>> result.answer, len(result.steps)

    达到 max_steps 仍没有最终答案时，答案取最后一次 observation
    （没有 observation 时为 "Could not determine answer within N steps."），total_steps = max_steps；
    模型给出空的最终答案时同样取这个兜底答案；
    raise_on_max_steps=True 时改为抛出 MaxStepsExceededError。
    """

    def __init__(self, model: BaseLanguageModel, config: AgentConfig | None = None, memory: BaseMemory | None = None):
        """初始化 Agent

        Args:
            model: 语言模型
            config: Agent 配置
            memory: 记忆（可选），最终答案会写入记忆
        """
        self.model = model
        self.config = config or AgentConfig()
        self.memory = memory

    async def arun(self, query: str) -> AgentResult:
        """运行 Agent

        Args:
            query: 用户问题

        Returns:
            AgentResult

        Raises:
            MaxStepsExceededError: raise_on_max_steps=True 且未得到最终答案
            ToolExecutionError: 工具执行失败
        """
        run = _AgentRun()
        async for _ in self._execute(query, run):
            pass
        return run.to_result()

    async def astream(self, query: str) -> AsyncIterator[AgentStep]:
        """逐步产出推理轨迹

        Yields:
            每一步的 AgentStep（最终答案步骤的 observation 为 None）
        """
        async for step in self._execute(query, _AgentRun()):
            yield step

    async def _execute(self, query: str, run: _AgentRun) -> AsyncIterator[AgentStep]:
        max_steps = self.config.max_steps
        logger.debug(
            f"Agent run - query: {truncate_content(query)}, tools: {[t.id for t in self.config.tools]}, "
            f"chains: {[c.name for c in self.config.chains]}, max_steps: {max_steps}"
        )

        memory_context = await self._load_memory_context(query)
        scratchpad = ""

        for step_index in range(max_steps):
            prompt = self._build_prompt(query, memory_context, scratchpad)
            response = await self.model.generate(prompt, GenerationConfig.conversational())
            parsed = self.parse_response(response.text)
            logger.debug(f"Agent step {step_index + 1}/{max_steps} - action: {parsed.action}")

            if parsed.action == FINAL_ANSWER:
                # 空的最终答案按未得到答案处理
                answer = parsed.input.strip() or self._fallback_answer(run, max_steps)
                step = AgentStep(thought=parsed.thought, action=FINAL_ANSWER, input=answer)
                run.steps.append(step)
                run.answer = answer
                run.total_steps = step_index + 1

                if self.memory is not None:
                    await self.memory.save_context(query, answer)

                logger.debug(f"Agent completed - steps: {run.total_steps}, answer: {truncate_content(run.answer)}")
                yield step
                return

            observation = await self._act(parsed)
            step = AgentStep(thought=parsed.thought, action=parsed.action, input=parsed.input, observation=observation)
            run.steps.append(step)
            scratchpad += (
                f"Thought: {parsed.thought}\n"
                f"Action: {parsed.action}\n"
                f"Input: {parsed.input}\n"
                f"Observation: {observation}\n\n"
            )
            yield step

        logger.warning(f"Agent reached max steps ({max_steps}) without a final answer")
        if self.config.raise_on_max_steps:
            raise MaxStepsExceededError(max_steps, list(run.steps))

        run.answer = self._fallback_answer(run, max_steps)
        run.total_steps = max_steps

    @staticmethod
    def _fallback_answer(run: _AgentRun, max_steps: int) -> str:
        last_observation = run.steps[-1].observation if run.steps else None
        return last_observation or f"Could not determine answer within {max_steps} steps."

    async def _act(self, parsed: ParsedAction) -> str:
        """执行一个动作并返回 observation"""
        for tool in self.config.tools:
            if tool.id == parsed.action:
                logger.info(f"Agent executing tool: {tool.id}")
                return await tool.ainvoke(parsed.input)

        for chain in self.config.chains:
            if chain.name == parsed.action:
                logger.info(f"Agent executing chain: {chain.name}")
                output = await chain.ainvoke(ChainInput(text=parsed.input))
                return output.text

        return f"Unknown action: {parsed.action}"

    async def _load_memory_context(self, query: str) -> str:
        if self.memory is None:
            return ""
        entries = await self.memory.load(query)
        return "\n".join(f"{entry.role}: {entry.content}" for entry in entries)

    def _build_prompt(self, query: str, memory_context: str, scratchpad: str) -> str:
        tool_descriptions = "\n".join(
            f"- {tool.id}: {tool.description} ({tool.parameter_description})" for tool in self.config.tools
        )
        chain_descriptions = "\n".join(f"- {chain.name}: on-device AI chain" for chain in self.config.chains)
        memory_block = f"Conversation context:\n{memory_context}\n" if memory_context else ""

        return (
            f"{self.config.system_prompt or DEFAULT_AGENT_SYSTEM_PROMPT}\n\n"
            f"Available tools:\n{tool_descriptions}\n\n"
            f"Available chains:\n{chain_descriptions}\n\n"
            f"{memory_block}\n"
            f"User query: {query}\n\n"
            f"{scratchpad}\n"
            "Respond in this format:\n"
            "Thought: <your reasoning>\n"
            f"Action: <tool_id or chain_name or {FINAL_ANSWER}>\n"
            "Input: <input to the action>"
        )

    @staticmethod
    def parse_response(text: str) -> ParsedAction:
        """解析模型输出

        按行识别 "Thought:" / "Action:" / "Input:" 前缀；
        没有 Action 时视为最终答案，没有 Input 时以整段输出作为输入。
        """
        thought = ""
        action = FINAL_ANSWER
        action_input = text.strip()

        for line in text.splitlines():
            stripped = line.strip()
            if stripped.startswith("Thought:"):
                thought = stripped[len("Thought:") :].strip()
            elif stripped.startswith("Action:"):
                action = stripped[len("Action:") :].strip()
            elif stripped.startswith("Input:"):
                action_input = stripped[len("Input:") :].strip()

        if action.upper().replace(" ", "_") == FINAL_ANSWER:
            action = FINAL_ANSWER

        return ParsedAction(thought=thought, action=action, input=action_input)


__all__ = [
    "FINAL_ANSWER",
    "AgentConfig",
    "AgentStep",
    "AgentResult",
    "Agent",
]
