from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

from loguru import logger

from config.main import local_configs
from core.logger import setup_loguru
from config.default import RegisterExtensionConfig


async def init_ctx():
    # logger
    setup_loguru(local_configs.project.log_level)
    # extensions
    for name, ext_conf in local_configs.extensions:  # type: ignore
        if isinstance(ext_conf, RegisterExtensionConfig):
            await ext_conf.register()
            logger.debug(f"Extension registered: {name}")


async def clear_ctx():
    # 逆序释放，后注册的先关闭
    for name, ext_conf in reversed(list(local_configs.extensions)):  # type: ignore
        if isinstance(ext_conf, RegisterExtensionConfig):
            await ext_conf.unregister()
            logger.debug(f"Extension unregistered: {name}")


@asynccontextmanager
async def ctx() -> AsyncGenerator:
    await init_ctx()

    try:
        yield
    finally:
        await clear_ctx()
