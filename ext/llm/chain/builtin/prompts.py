"""
内置 Chain 使用的提示词模板与输出清理工具
"""

import re

from ext.llm.chain.prompt import PromptTemplate
from util.general import detect_script_language

SUMMARIZE_PROMPT = PromptTemplate(
    "Summarize the following {input_type_hint} into EXACTLY {bullet_count} bullet point(s). "
    "You MUST output {bullet_count} bullet point(s), no more, no less.\n"
    "\n"
    "Rules:\n"
    '- Output EXACTLY {bullet_count} bullet point(s), each starting with "* "\n'
    "- Each bullet should capture a key point concisely\n"
    "- Do NOT output any other text before or after the bullet point(s)\n"
    "\n"
    "Text to summarize:\n"
    "<input>{text}</input>"
)

CLASSIFY_PROMPT = PromptTemplate(
    "Classify the following text into one or more of these categories: {categories}\n"
    "\n"
    "Return ONLY the matching categories with confidence scores, one per line, in this exact format:\n"
    "category: score\n"
    "\n"
    "Scores should be between 0.0 and 1.0 and sum to 1.0.\n"
    "Do not include any other text, headers, or explanation.\n"
    "\n"
    "Text to classify:\n"
    "<input>{text}</input>"
)

EXTRACT_PROMPT = PromptTemplate(
    "Extract entities from the following text.\n"
    "Entity types to find: {entity_types}\n"
    "\n"
    "Return ONLY a list of entities, one per line, in this exact format:\n"
    "type: value\n"
    "\n"
    "Do not include any other text, headers, numbering, or explanation.\n"
    "\n"
    "Text:\n"
    "<input>{text}</input>"
)

TRANSLATE_PROMPT = PromptTemplate(
    "Translate the following text from {source_language} to {target_language}.\n"
    "Provide ONLY the translation, no explanations or additional text.\n"
    "\n"
    "Text to translate:\n"
    "{text}"
)

REWRITE_PROMPT = PromptTemplate(
    "Rewrite the following text {style_instruction}\n"
    "Return ONLY the rewritten text with no labels, headers, or alternatives.\n"
    "\n"
    "Text to rewrite:\n"
    "<input>{text}</input>"
)

PROOFREAD_PROMPT = PromptTemplate(
    "Proofread the following text for grammar, spelling, and punctuation errors.\n"
    "Return the corrected text.\n"
    "\n"
    "Text to proofread:\n"
    "<input>{text}</input>"
)

CHAT_PROMPT = PromptTemplate(
    "{system_prompt}\n"
    "\n"
    "{language_instruction}\n"
    "\n"
    "{history}User: {text}\n"
    "Assistant:"
)

_PREAMBLE_MARKERS = ("certainly", "sure", "of course", "here is", "here's", "below is", "here are")
_BOLD = re.compile(r"\*\*(.+?)\*\*")
_ITALIC = re.compile(r"(?<!\*)\*(?!\*)(.+?)(?<!\*)\*(?!\*)")
_HEADER = re.compile(r"^#{1,6}\s+", re.MULTILINE)

LANGUAGE_NAMES = {
    "ar": "Arabic",
    "de": "German",
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "hi": "Hindi",
    "id": "Indonesian",
    "it": "Italian",
    "ja": "Japanese",
    "ko": "Korean",
    "nl": "Dutch",
    "pl": "Polish",
    "pt": "Portuguese",
    "ru": "Russian",
    "th": "Thai",
    "tr": "Turkish",
    "vi": "Vietnamese",
    "zh": "Chinese",
}


def strip_preamble(text: str) -> str:
    """清理端侧模型输出

    - 去掉形如 "Certainly! Here is..." 的首段
    - 去掉包裹全文的引号
    - 去掉 markdown 粗体、斜体与标题标记
    """
    result = text.strip()

    parts = result.split("\n\n")
    if len(parts) > 1:
        first = parts[0].lower()
        if any(marker in first for marker in _PREAMBLE_MARKERS):
            result = "\n\n".join(parts[1:]).strip()

    if len(result) > 2 and result.startswith('"') and result.endswith('"'):
        result = result[1:-1]

    result = _BOLD.sub(r"\1", result)
    result = _ITALIC.sub(r"\1", result)
    result = _HEADER.sub("", result)
    return result


def language_name(code: str) -> str:
    """语言代码转英文名称，未知代码原样返回"""
    base = code.replace("_", "-").split("-")[0].lower()
    return LANGUAGE_NAMES.get(base, code)


def detect_language(text: str) -> str:
    """根据文字所属的书写系统推断回复语言（英文名称）

    只包含拉丁字母的文本一律视为英文
    """
    code = detect_script_language(text)
    if code is None:
        return "English"
    return LANGUAGE_NAMES[code]


__all__ = [
    "SUMMARIZE_PROMPT",
    "CLASSIFY_PROMPT",
    "EXTRACT_PROMPT",
    "TRANSLATE_PROMPT",
    "REWRITE_PROMPT",
    "PROOFREAD_PROMPT",
    "CHAT_PROMPT",
    "strip_preamble",
    "language_name",
    "detect_language",
]
