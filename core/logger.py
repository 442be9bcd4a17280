from __future__ import annotations

import sys
import logging
import warnings
import traceback
from enum import Enum
from types import FrameType
from typing import cast
from itertools import chain

import loguru
from loguru import logger

from core.types import IntEnum
from config.default import ENVIRONMENT, EnvironmentEnum


class LogLevelEnum(IntEnum):
    """日志级别"""

    CRITICAL = (logging.CRITICAL, "CRITICAL")
    ERROR = (logging.ERROR, "ERROR")
    WARNING = (logging.WARNING, "WARNING")
    INFO = (logging.INFO, "INFO")
    DEBUG = (logging.DEBUG, "DEBUG")
    NOTSET = (logging.NOTSET, "NOTSET")


class LoggerNameEnum(str, Enum):
    root = "root"
    httpx = "httpx"
    httpcore = "httpcore"
    aiosqlite = "aiosqlite"
    asyncio = "asyncio"


IgnoredLoggerNames = [
    LoggerNameEnum.httpcore.value,
]


class InterceptHandler(logging.Handler):
    """Logs to loguru from Python logging module"""

    def emit(self, record: logging.LogRecord) -> None:
        if record.name.split(".")[0] in IgnoredLoggerNames:
            return
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = str(record.levelno)

        if record.exc_info:
            tb = traceback.extract_tb(record.exc_info[2])
            if tb:
                file_name, line_num, func_name, _ = tb[-1]
                location = f"{file_name}:{func_name}:{line_num}"
            else:
                location = record.name
            logger.bind(location=location).opt(exception=record.exc_info).error(record.getMessage())
            return

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:  # noqa: WPS609
            frame = cast(FrameType, frame.f_back)
            depth += 1

        logger.opt(depth=depth).log(
            level,
            record.getMessage(),
        )


def setup_loguru_logging_intercept(
    level: int = logging.DEBUG,
    modules: tuple | list = (),
) -> None:
    logging.basicConfig(handlers=[InterceptHandler()], level=level)  # noqa
    for logger_name in chain(("",), modules):
        mod_logger = logging.getLogger(logger_name)
        mod_logger.handlers = [InterceptHandler(level=level)]
        mod_logger.setLevel(level)
        mod_logger.propagate = False


def edit_record_and_gen_format(record: loguru.Record) -> str:
    extra = record.get("extra") or {}
    if record["level"].no <= 10:
        # debug
        level_color = "white"
    elif record["level"].no <= 20:
        # info
        level_color = "blue"
    elif record["level"].no <= 30:
        # warning
        level_color = "yellow"
    elif record["level"].no <= 40:
        # error
        level_color = "red"
    else:
        # other
        level_color = "magenta"
    if ENVIRONMENT in [EnvironmentEnum.local.value]:
        format_s = (
            "<green>[{time:YYYY-MM-DD HH:mm:ss}]</green> | "
            + f"<{level_color}>"
            + "<bold>[{level}]</bold>"
            + f"</{level_color}>"
            + " | <fg 0,75,0><underline>{name}:{line}</underline> >> {function}</fg 0,75,0> | <cyan>{message}</cyan>"
        )
    else:
        format_s = "[{time:YYYY-MM-DD HH:mm:ss}] | [{level}] | {name}:{line} >> {function} | {message}"

    if extra:
        format_s += " | {extra}"

    return format_s + "\n{exception}"


def setup_loguru(
    level: LogLevelEnum | str = LogLevelEnum.INFO,
) -> None:
    """替换 loguru 默认输出，并接管标准库 logging

    Args:
        level: 日志级别，支持 LogLevelEnum 或级别名称（如 "DEBUG"）
    """
    if isinstance(level, str):
        level = LogLevelEnum[level.upper()]

    logger.remove()
    logger.add(
        sink=sys.stdout,  # type: ignore
        format=edit_record_and_gen_format,  # 日志显示格式
        level=level.label,  # 日志级别
        enqueue=False,
        serialize=False,
        backtrace=True,
        diagnose=ENVIRONMENT in [EnvironmentEnum.local.value],
        colorize=None,
    )

    setup_loguru_logging_intercept(
        level=level.value,
        modules=[
            LoggerNameEnum.httpx.value,
            LoggerNameEnum.aiosqlite.value,
            LoggerNameEnum.asyncio.value,
        ],
    )

    # capture warning
    logging.captureWarnings(True)
    showwarning_ = warnings.showwarning

    def showwarning(message, *args, **kwargs):
        logger.warning(message)
        showwarning_(message, *args, **kwargs)

    warnings.showwarning = showwarning
