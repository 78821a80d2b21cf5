"""
PyStately：最小的行程內狀態容器。

提供 Store、中介軟體管線與有上限的 DevTools 歷史紀錄器。
"""

from .errors import (
    StatelyError, ActionError, StoreError, MiddlewareError, ConfigurationError
)
from .actions import Action, SET_STATE, create_action, to_action, now_ms
from .config import StoreOptions, DEVELOPMENT, PRODUCTION
from .devtools import DevTools, STATE_CHANGED
from .logger import Logger, NullLogger, LogLevel, LogCategory, LogEntry, LogFormat
from .middleware import (
    BaseMiddleware, LoggerMiddleware, PerformanceMonitorMiddleware,
    ThunkMiddleware, ErrorMiddleware, apply_middleware, compose_middleware,
    create_logger, global_error
)
from .store import Store, create_store
from .immutable_utils import to_dict

__version__ = "0.1.0"

# 匯出所有公開 API
__all__ = [
    # Errors
    "StatelyError", "ActionError", "StoreError", "MiddlewareError",
    "ConfigurationError",

    # Actions
    "Action", "SET_STATE", "create_action", "to_action", "now_ms",

    # Config
    "StoreOptions", "DEVELOPMENT", "PRODUCTION",

    # DevTools
    "DevTools", "STATE_CHANGED",

    # Logging
    "Logger", "NullLogger", "LogLevel", "LogCategory", "LogEntry", "LogFormat",

    # Middleware
    "BaseMiddleware", "LoggerMiddleware", "PerformanceMonitorMiddleware",
    "ThunkMiddleware", "ErrorMiddleware", "apply_middleware",
    "compose_middleware", "create_logger", "global_error",

    # Store
    "Store", "create_store",

    # Immutable Utils
    "to_dict",
]
