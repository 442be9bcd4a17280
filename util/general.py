import time


def elapsed_ms(start: float) -> int:
    """计算从 start（time.perf_counter）到现在的毫秒数"""
    return int((time.perf_counter() - start) * 1000)


def truncate_content(content: str | None, truncate: bool = True, max_length: int = 100) -> str:
    """Truncate content for logging

    Args:
        content: Content to truncate
        truncate: Whether to truncate
        max_length: Maximum length before truncation

    Returns:
        Truncated or original content
    """
    if not content:
        return ""

    if not truncate or len(content) <= max_length:
        return content

    return content[:max_length] + f"... (truncated, total {len(content)} chars)"


_SCRIPT_RANGES: list[tuple[str, tuple[tuple[int, int], ...]]] = [
    ("ja", ((0x3040, 0x30FF),)),
    ("ko", ((0xAC00, 0xD7AF), (0x1100, 0x11FF), (0x3130, 0x318F))),
    ("zh", ((0x4E00, 0x9FFF),)),
    ("ar", ((0x0600, 0x06FF),)),
    ("ru", ((0x0400, 0x04FF),)),
    ("th", ((0x0E00, 0x0E7F),)),
]


def detect_script_language(text: str) -> str | None:
    """根据书写系统推断语言代码

    假名优先于汉字（日文混写汉字），无法判断（如纯拉丁字母）时返回 None

    Args:
        text: 输入文本

    Returns:
        语言代码（ja / ko / zh / ar / ru / th）或 None
    """
    found: set[str] = set()
    for char in text:
        code = ord(char)
        for language, ranges in _SCRIPT_RANGES:
            if any(low <= code <= high for low, high in ranges):
                found.add(language)
                break

    for language, _ in _SCRIPT_RANGES:
        if language in found:
            return language
    return None
