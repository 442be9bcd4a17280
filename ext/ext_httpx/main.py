import httpx
from typing_extensions import override
from config.default import RegisterExtensionConfig, InstanceExtensionConfig
from loguru import logger


class HttpxConfig(RegisterExtensionConfig, InstanceExtensionConfig[httpx.AsyncClient]):
    """共享 httpx 客户端配置，负责 AsyncClient 的生命周期

    模型与 embedding provider 在未显式传入 client 时使用此实例
    """

    _client: httpx.AsyncClient | None = None

    max_connections: int = 20
    max_keepalive_connections: int = 10
    timeout: float = 60.0
    user_agent: str = "locanara-python"

    @property
    def instance(self) -> httpx.AsyncClient:
        """获取当前实例的 httpx 客户端"""
        if self._client is None:
            raise RuntimeError("Httpx client not initialized. Make sure register() has been called.")
        return self._client

    @property
    def registered(self) -> bool:
        return self._client is not None

    @override
    async def register(self) -> None:
        """初始化 httpx.AsyncClient"""
        if self._client is not None:
            return

        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            limits=httpx.Limits(
                max_connections=self.max_connections,
                max_keepalive_connections=self.max_keepalive_connections,
            ),
            headers={"User-Agent": self.user_agent},
        )
        logger.info("Httpx client initialized")

    @override
    async def unregister(self) -> None:
        """关闭 httpx.AsyncClient"""
        if self._client is None:
            return

        try:
            await self._client.aclose()
        except RuntimeError as e:
            if "Event loop is closed" not in str(e):
                raise
            logger.debug("Event loop already closed, skipping httpx client cleanup")
        self._client = None
        logger.info("Httpx client closed")
