"""
测试 Output Parser
"""

import pytest
from pydantic import BaseModel

from ext.llm.chain import JsonOutputParser, ListOutputParser, OutputParserError, StrOutputParser


class Person(BaseModel):
    name: str
    age: int


class TestStrOutputParser:
    @pytest.mark.asyncio
    async def test_strip(self):
        """测试去除首尾空白"""
        assert await StrOutputParser().parse("\n  answer \n") == "answer"


class TestListOutputParser:
    """测试列表解析器"""

    @pytest.mark.asyncio
    async def test_strip_list_markers(self):
        """测试去除列表标记与空行"""
        text = "- apples\n* bananas\n\n1. cherries\n• dates"
        items = await ListOutputParser().parse(text)
        assert items == ["apples", "bananas", "cherries", "dates"]
        print(f"✓ 解析出 {len(items)} 项")

    @pytest.mark.asyncio
    async def test_custom_delimiter(self):
        """测试自定义分隔符"""
        parser = ListOutputParser(delimiter=",")
        assert await parser.parse("red, green ,blue,") == ["red", "green", "blue"]
        assert "','" in parser.get_format_instructions()


class TestJsonOutputParser:
    """测试 JSON 解析器"""

    @pytest.mark.asyncio
    async def test_parse_code_fence(self):
        """测试去掉代码块标记和前后说明文字"""
        text = 'Here you go:\n```json\n{"name": "Alice", "age": 30}\n```\nHope it helps'
        parsed = await JsonOutputParser().parse(text)
        assert parsed == {"name": "Alice", "age": 30}
        print(f"✓ JSON 解析: {parsed}")

    @pytest.mark.asyncio
    async def test_parse_array(self):
        """测试解析数组"""
        assert await JsonOutputParser().parse("result: [1, 2, 3]") == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_pydantic_validation(self):
        """测试 Pydantic 模型校验"""
        parser = JsonOutputParser(pydantic_object=Person)
        person = await parser.parse('{"name": "Bob", "age": "41"}')
        assert isinstance(person, Person)
        assert person.age == 41
        assert "schema" in parser.get_format_instructions()

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        """测试无效 JSON"""
        with pytest.raises(OutputParserError) as exc_info:
            await JsonOutputParser().parse("{not json}")
        assert exc_info.value.text == "{not json}"
        print(f"✓ 解析失败: {exc_info.value}")

    @pytest.mark.asyncio
    async def test_validation_error(self):
        """测试校验失败"""
        with pytest.raises(OutputParserError):
            await JsonOutputParser(pydantic_object=Person).parse('{"name": "Bob"}')
