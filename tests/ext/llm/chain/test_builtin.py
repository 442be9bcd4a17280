"""
测试内置 Chain
"""

import pytest

from ext.llm.chain import BufferMemory, ChainInput
from ext.llm.chain.builtin import (
    BuiltinChain,
    ChatChain,
    ChatResult,
    ClassifyChain,
    ClassifyResult,
    ExtractChain,
    ProofreadChain,
    RewriteChain,
    RewriteOutputType,
    SummarizeChain,
    SummarizeResult,
    TranslateChain,
    detect_language,
    language_name,
    strip_preamble,
)
from ext.llm.exceptions import LLMAPIError
from ext.llm.types import GenerationConfig


class TestOutputCleanup:
    """测试输出清理工具"""

    def test_strip_preamble_paragraph(self):
        """测试去掉客套开头段落"""
        text = "Certainly! Here is the translation:\n\nBonjour le monde"
        assert strip_preamble(text) == "Bonjour le monde"

    def test_keep_single_paragraph(self):
        """只有一段时不删除"""
        assert strip_preamble("Sure thing") == "Sure thing"

    def test_strip_quotes_and_markdown(self):
        """测试去掉引号、粗体、斜体与标题"""
        assert strip_preamble('"quoted answer"') == "quoted answer"
        assert strip_preamble("## Title\n**bold** and *italic*") == "Title\nbold and italic"
        print("✓ markdown 标记已清理")

    def test_language_helpers(self):
        """测试语言代码与语言检测"""
        assert language_name("zh-Hans") == "Chinese"
        assert language_name("ko") == "Korean"
        assert language_name("xx") == "xx"
        assert detect_language("Hello there") == "English"
        assert detect_language("안녕하세요") == "Korean"
        assert detect_language("こんにちは世界") == "Japanese"


class TestBuiltinChainBase:
    """测试内置 Chain 基类"""

    def test_hooks_are_abstract(self, scripted_model):
        """只实现 build_prompt 的子类无法实例化"""

        class PromptOnlyChain(BuiltinChain):
            def build_prompt(self, input: ChainInput) -> str:
                return input.text

        with pytest.raises(TypeError):
            PromptOnlyChain(scripted_model("x"))
        assert BuiltinChain.__abstractmethods__ == frozenset({"build_prompt", "parse"})

    @pytest.mark.asyncio
    async def test_chat_chain_hooks(self, scripted_model):
        """ChatChain 通过 build_prompt / parse 生成 prompt 与结果"""
        chat = ChatChain(scripted_model("  Hi there!  "))

        prompt = chat.build_prompt(ChainInput(text="Hello"), history="User: earlier\n")
        result = await chat.arun("Hello")

        assert "User: earlier" in prompt
        assert "You MUST reply in English" in prompt
        assert result == ChatResult(message="Hi there!", can_continue=True)


class TestSummarizeChain:
    @pytest.mark.asyncio
    async def test_summarize(self, scripted_model):
        """测试摘要结果与 prompt"""
        model = scripted_model("Here is the summary:\n\n* Pasta needs ten minutes.")
        chain = SummarizeChain(model, bullet_count=2, input_type="article")
        text = "Boil the pasta for ten minutes, then drain it."

        result = await chain.arun(text)

        assert isinstance(result, SummarizeResult)
        assert result.summary == "* Pasta needs ten minutes."
        assert result.original_length == len(text)
        assert result.summary_length == len(result.summary)
        assert result.confidence == 0.85
        assert "EXACTLY 2 bullet point(s)" in model.prompts[0]
        assert "following article" in model.prompts[0]
        assert model.configs[0] == GenerationConfig.structured()
        print(f"✓ 摘要: {result.summary}")


class TestClassifyChain:
    """测试分类"""

    @pytest.mark.asyncio
    async def test_scored_lines(self, scripted_model):
        """测试解析 category: score 行并按得分排序"""
        model = scripted_model("neutral: 0.2\nPositive: 0.7\n- negative: 0.1\nunrelated: 0.9")
        result = await ClassifyChain(model, max_results=2).arun("I love it")

        assert isinstance(result, ClassifyResult)
        assert [c.label for c in result.classifications] == ["positive", "neutral"]
        assert result.top_classification.score == 0.7
        print(f"✓ 分类结果: {result.top_classification.label}")

    @pytest.mark.asyncio
    async def test_score_clamped(self, scripted_model):
        result = await ClassifyChain(scripted_model("sports: 3\nnews: abc"), ["sports", "news"]).arun("goal!")
        assert result.top_classification.label == "sports"
        assert result.top_classification.score == 1.0
        assert result.classifications[-1].score == 0.0

    @pytest.mark.asyncio
    async def test_fallback_to_mentioned_category(self, scripted_model):
        """测试没有得分行时取文本中出现的类别"""
        result = await ClassifyChain(scripted_model("This is clearly negative.")).arun("awful")
        assert result.top_classification.label == "negative"
        assert result.top_classification.score == 1.0

    @pytest.mark.asyncio
    async def test_fallback_to_raw_text(self, scripted_model):
        """测试无法识别任何类别时使用原始输出"""
        output = await ClassifyChain(scripted_model(" mixed ")).ainvoke(ChainInput(text="meh"))
        assert output.text == "mixed"


class TestExtractChain:
    @pytest.mark.asyncio
    async def test_extract_entities(self, scripted_model):
        """测试抽取实体"""
        model = scripted_model("Person: Alice\n- location: Paris\nDate:\nAcme Corp")
        result = await ExtractChain(model, entity_types=["person", "location"]).arun("Alice went to Paris")

        assert [(e.type, e.value) for e in result.entities] == [
            ("person", "Alice"),
            ("location", "Paris"),
            ("extracted", "Acme Corp"),
        ]
        assert result.entities[0].confidence == 0.9
        assert result.entities[2].confidence == 0.8
        assert "person, location" in model.prompts[0]
        print(f"✓ 抽取到 {len(result.entities)} 个实体")


class TestTranslateRewriteProofread:
    """测试翻译、改写与校对"""

    @pytest.mark.asyncio
    async def test_translate(self, scripted_model):
        model = scripted_model('"안녕하세요"')
        result = await TranslateChain(model, target_language="ko").arun("Hello")

        assert result.translated_text == "안녕하세요"
        assert result.source_language == "en"
        assert result.target_language == "ko"
        assert result.confidence == 0.90
        assert "from English to Korean" in model.prompts[0]

    @pytest.mark.asyncio
    async def test_rewrite_with_string_style(self, scripted_model):
        """测试用字符串指定改写风格"""
        model = scripted_model("Dear team, please review.")
        chain = RewriteChain(model, style="professional")
        result = await chain.arun("hey folks look at this")

        assert chain.style is RewriteOutputType.professional
        assert result.style == RewriteOutputType.professional
        assert result.confidence == 0.88
        assert RewriteOutputType.professional.instruction in model.prompts[0]

    def test_rewrite_invalid_style(self, scripted_model):
        with pytest.raises(ValueError):
            RewriteChain(scripted_model(), style="pirate")

    @pytest.mark.asyncio
    async def test_proofread(self, scripted_model):
        """测试校对是否有修改"""
        corrected = await ProofreadChain(scripted_model("I have a cat.")).arun("I has a cat.")
        assert corrected.has_corrections
        assert corrected.corrections == []

        unchanged = await ProofreadChain(scripted_model("Fine text.")).arun("Fine text.")
        assert not unchanged.has_corrections


class TestChatChain:
    """测试对话"""

    @pytest.mark.asyncio
    async def test_chat_with_memory(self, scripted_model):
        """测试历史写入 prompt，回复写回记忆"""
        model = scripted_model("Hi Alice!", "Your name is Alice.")
        memory = BufferMemory()
        chain = ChatChain(model, memory=memory)

        first = await chain.arun("I am Alice")
        second = await chain.arun("What is my name?")

        assert isinstance(first, ChatResult)
        assert second.message == "Your name is Alice."
        assert "User: I am Alice\nAssistant: Hi Alice!\nUser: What is my name?" in model.prompts[1]
        assert "reply in English" in model.prompts[0]
        assert len(await memory.load()) == 4
        assert model.configs[0] == GenerationConfig.conversational()
        print(f"✓ 多轮对话: {second.message}")

    @pytest.mark.asyncio
    async def test_reply_language_follows_script(self, scripted_model):
        model = scripted_model("你好")
        await ChatChain(model, system_prompt="Be brief.").arun("你好吗")
        assert "reply in Chinese" in model.prompts[0]
        assert "System instruction: Be brief." in model.prompts[0]

    @pytest.mark.asyncio
    async def test_stream_saves_after_completion(self, scripted_model):
        """测试流式对话完成后才写入记忆"""
        model = scripted_model("streamed reply", chunk_size=4)
        memory = BufferMemory()
        chain = ChatChain(model, memory=memory)

        chunks = []
        async for chunk in chain.astream_chat("hello"):
            chunks.append(chunk)
            assert await memory.load() == []

        assert "".join(chunks) == "streamed reply"
        entries = await memory.load()
        assert [entry.content for entry in entries] == ["hello", "streamed reply"]

    @pytest.mark.asyncio
    async def test_failed_chat_not_saved(self, scripted_model):
        memory = BufferMemory()
        chain = ChatChain(scripted_model(LLMAPIError("down")), memory=memory)
        with pytest.raises(LLMAPIError):
            await chain.arun("hello")
        assert await memory.load() == []


class TestModelConvenienceMethods:
    """测试 BaseLanguageModel 上的便捷方法"""

    @pytest.mark.asyncio
    async def test_summarize_and_translate(self, scripted_model):
        model = scripted_model("* short", "Hola")
        summary = await model.summarize("long text", bullet_count=1)
        translation = await model.translate("Hello", to="es")

        assert summary.summary == "* short"
        assert translation.translated_text == "Hola"
        assert translation.target_language == "es"

    @pytest.mark.asyncio
    async def test_classify_extract_rewrite_proofread_chat(self, scripted_model):
        model = scripted_model("spam: 0.9", "person: Bob", "Shorter.", "Fixed.", "Hello!")

        assert (await model.classify("win money", ["spam", "ham"])).top_classification.label == "spam"
        assert (await model.extract("Bob called")).entities[0].value == "Bob"
        assert (await model.rewrite("a long sentence", RewriteOutputType.shorten)).rewritten_text == "Shorter."
        assert (await model.proofread("fixd.")).corrected_text == "Fixed."
        assert (await model.chat("hi")).message == "Hello!"
