"""统一日志配置
================

为包内所有模块提供一致的日志格式与级别控制。

用法
----
在各模块中：

    from atomdirac.logging_config import get_logger
    logger = get_logger(__name__)

    logger.debug("轨道长度调整: %d -> %d", old, new)

日志级别可通过环境变量控制：

    export ATOMDIRAC_LOG_LEVEL=DEBUG

也可在程序中调用 :func:`set_log_level` 或 :func:`enable_file_logging`。
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime

__all__ = [
    "get_logger",
    "set_log_level",
    "enable_file_logging",
    "disable_file_logging",
]

_loggers: dict[str, logging.Logger] = {}

_DEFAULT_FORMAT = "%(asctime)s | %(name)-28s | %(levelname)-8s | %(message)s"
_DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_DEFAULT_LEVEL = logging.WARNING

_ROOT_NAME = "atomdirac"

_handlers_configured = False
_file_handler: logging.FileHandler | None = None


def _configure_package_handler() -> None:
    """首次获取 logger 时配置包级 handler（仅一次）。"""
    global _handlers_configured

    if _handlers_configured:
        return

    env_level = os.environ.get("ATOMDIRAC_LOG_LEVEL", "").upper()
    level = logging.getLevelName(env_level) if env_level else _DEFAULT_LEVEL
    if not isinstance(level, int):
        level = _DEFAULT_LEVEL

    package_logger = logging.getLogger(_ROOT_NAME)
    package_logger.setLevel(level)

    if not package_logger.handlers:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter(_DEFAULT_FORMAT, datefmt=_DEFAULT_DATE_FORMAT))
        package_logger.addHandler(console_handler)

    _handlers_configured = True


def get_logger(name: str) -> logging.Logger:
    """获取指定模块名的 logger（带缓存）。

    Parameters
    ----------
    name : str
        模块名，通常传入 ``__name__``。

    Returns
    -------
    logging.Logger
        已配置的 logger。
    """
    if name not in _loggers:
        _configure_package_handler()
        _loggers[name] = logging.getLogger(name)
    return _loggers[name]


def set_log_level(level: int) -> None:
    """设置包内所有 logger 及其 handler 的级别。"""
    package_logger = logging.getLogger(_ROOT_NAME)
    package_logger.setLevel(level)
    for handler in package_logger.handlers:
        handler.setLevel(level)


def enable_file_logging(filename: str | None = None, level: int = logging.DEBUG) -> str:
    """额外把日志写入文件。

    Parameters
    ----------
    filename : str, optional
        日志文件路径；缺省时生成带时间戳的文件名。
    level : int
        文件 handler 的级别（默认 DEBUG）。

    Returns
    -------
    str
        实际使用的日志文件路径。
    """
    global _file_handler

    if filename is None:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filename = f"atomdirac_{timestamp}.log"

    disable_file_logging()

    _file_handler = logging.FileHandler(filename, encoding="utf-8")
    _file_handler.setLevel(level)
    _file_handler.setFormatter(logging.Formatter(_DEFAULT_FORMAT, datefmt=_DEFAULT_DATE_FORMAT))

    package_logger = logging.getLogger(_ROOT_NAME)
    package_logger.addHandler(_file_handler)
    if package_logger.level > level:
        package_logger.setLevel(level)

    return filename


def disable_file_logging() -> None:
    """关闭文件日志（若已开启）。"""
    global _file_handler

    if _file_handler is not None:
        logging.getLogger(_ROOT_NAME).removeHandler(_file_handler)
        _file_handler.close()
        _file_handler = None
