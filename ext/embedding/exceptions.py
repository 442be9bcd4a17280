"""
Embedding 模块自定义异常类
"""


class EmbeddingError(Exception):
    """Embedding 模块基础异常类"""
    pass


class EmbeddingConfigError(EmbeddingError):
    """Embedding 配置错误"""
    pass


class EmbeddingModelNotFoundError(EmbeddingError):
    """Embedding 模型未找到错误"""
    pass


class EmbeddingAPIError(EmbeddingError):
    """Embedding API 调用错误"""

    def __init__(self, message: str, status_code: int | None = None, response_text: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_text = response_text


class EmbeddingTimeoutError(EmbeddingError):
    """Embedding 超时错误"""
    pass


class TextTooLongError(EmbeddingError):
    """文本超过引擎允许的最大长度"""

    def __init__(self, length: int, max_length: int):
        self.length = length
        self.max_length = max_length
        super().__init__(f"Text length {length} exceeds maximum {max_length}")


class BatchTooLargeError(EmbeddingError):
    """批量条数超过引擎允许的上限"""

    def __init__(self, count: int, max_size: int):
        self.count = count
        self.max_size = max_size
        super().__init__(f"Batch size {count} exceeds maximum {max_size}")


__all__ = [
    "EmbeddingError",
    "EmbeddingConfigError",
    "EmbeddingModelNotFoundError",
    "EmbeddingAPIError",
    "EmbeddingTimeoutError",
    "TextTooLongError",
    "BatchTooLargeError",
]
