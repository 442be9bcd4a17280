"""
LLM 模块异常定义

模型调用失败（网络、资源、生成错误）统一归入 LLMError 体系，
并原样穿过 Chain、组合器和执行器向上传递。
"""


class LLMError(Exception):
    """LLM 模块基础异常类

    所有模型相关异常的基类，用于统一捕获模型调用失败。
    """
    pass


class LLMConfigError(LLMError):
    """LLM 配置错误

    典型场景：
    - 缺少必需的配置项（如 base_url）
    - 配置参数格式错误
    """
    pass


class LLMModelNotFoundError(LLMError):
    """LLM 模型类型未注册"""
    pass


class LLMModelNotReadyError(LLMError):
    """模型尚未就绪（未加载或不可用）"""
    pass


class LLMAPIError(LLMError):
    """LLM API 调用错误

    典型场景：
    - 服务不可用或返回错误响应
    - 响应格式异常
    - 请求被限流且重试耗尽
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class LLMTimeoutError(LLMAPIError):
    """LLM 请求超时错误"""
    pass


class LLMStreamingError(LLMError):
    """LLM 流式输出错误

    典型场景：
    - 流式连接中断
    - 流式响应格式错误
    """
    pass


__all__ = [
    "LLMError",
    "LLMConfigError",
    "LLMModelNotFoundError",
    "LLMModelNotReadyError",
    "LLMAPIError",
    "LLMTimeoutError",
    "LLMStreamingError",
]
