"""
PyStately 的日誌接收端。

中介軟體透過 log_action / log_performance 呼叫日誌接收端，
核心不依賴其返回值，也可以替換成 NullLogger。
輸出交給標準 logging 模組，由宿主程式決定 handler 與格式。
"""
import enum
import json
import logging
import time
from typing import Any, Iterable, List, Mapping, Optional

from pydantic import BaseModel

from .immutable_utils import to_dict


class LogLevel(str, enum.Enum):
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class LogFormat(str, enum.Enum):
    TEXT = "text"
    JSON = "json"


class LogCategory(str, enum.Enum):
    STATE = "state"
    ACTION = "action"
    MIDDLEWARE = "middleware"
    PERFORMANCE = "performance"
    ERROR = "error"


_PRIORITIES = {
    LogLevel.DEBUG: 0,
    LogLevel.INFO: 1,
    LogLevel.WARN: 2,
    LogLevel.ERROR: 3,
}

_STDLIB_LEVELS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


class LogEntry(BaseModel):
    """保存在 Logger 中的一筆日誌紀錄。"""
    timestamp: float
    level: LogLevel
    category: LogCategory
    message: str
    data: Any = None


class Logger:
    """
    依等級與類別過濾的日誌接收端。

    Args:
        enabled: 是否輸出
        level: 最低輸出等級
        categories: 允許的類別，None 表示全部
        persist: 是否在記憶體中保留紀錄
        max_entries: 保留紀錄的上限，超出時淘汰最舊的
        name: 使用的標準 logging logger 名稱
        log_format: 輸出格式，TEXT 為 "[類別] 訊息"，JSON 為整筆紀錄的 JSON 字串
    """

    def __init__(
        self,
        enabled: bool = True,
        level: LogLevel = LogLevel.INFO,
        categories: Optional[Iterable[LogCategory]] = None,
        persist: bool = False,
        max_entries: int = 1000,
        name: str = "pystately",
        log_format: LogFormat = LogFormat.TEXT,
    ) -> None:
        self._enabled = enabled
        self._level = LogLevel(level)
        self._categories = set(categories) if categories is not None else set(LogCategory)
        self._persist = persist
        self._max_entries = max_entries
        self._entries: List[LogEntry] = []
        self._logger = logging.getLogger(name)
        self._format = LogFormat(log_format)

    def _should_log(self, level: LogLevel, category: LogCategory) -> bool:
        if not self._enabled:
            return False
        if category not in self._categories:
            return False
        return _PRIORITIES[level] >= _PRIORITIES[self._level]

    def _log(self, level: LogLevel, category: LogCategory, message: str, data: Any = None) -> None:
        if not self._should_log(level, category):
            return

        entry = LogEntry(
            timestamp=time.time(),
            level=level,
            category=category,
            message=message,
            data=to_dict(data),
        )
        if self._persist:
            self._entries.append(entry)
            if len(self._entries) > self._max_entries:
                del self._entries[: len(self._entries) - self._max_entries]

        if self._format is LogFormat.JSON:
            self._logger.log(
                _STDLIB_LEVELS[level],
                "%s",
                json.dumps(entry.model_dump(), default=str, ensure_ascii=False),
                extra={"stately_data": entry.data},
            )
            return
        self._logger.log(
            _STDLIB_LEVELS[level],
            "[%s] %s",
            category.value,
            message,
            extra={"stately_data": entry.data},
        )

    def debug(self, category: LogCategory, message: str, data: Any = None) -> None:
        self._log(LogLevel.DEBUG, category, message, data)

    def info(self, category: LogCategory, message: str, data: Any = None) -> None:
        self._log(LogLevel.INFO, category, message, data)

    def warn(self, category: LogCategory, message: str, data: Any = None) -> None:
        self._log(LogLevel.WARN, category, message, data)

    def error(self, category: LogCategory, message: str, data: Any = None) -> None:
        self._log(LogLevel.ERROR, category, message, data)

    def log_action(self, action: Any, prev_state: Any, next_state: Any) -> None:
        """記錄一次 action 及其前後狀態。"""
        if isinstance(action, Mapping):
            action_type = action.get("type")
        else:
            action_type = getattr(action, "type", None) or str(action)
        self.info(
            LogCategory.ACTION,
            f"Action: {action_type}",
            {"action": action, "prev_state": prev_state, "next_state": next_state},
        )

    def log_state_change(self, prev_state: Any, next_state: Any) -> None:
        self.debug(LogCategory.STATE, "State changed", {"prev_state": prev_state, "next_state": next_state})

    def log_middleware(self, middleware_name: str, action: Any) -> None:
        self.debug(LogCategory.MIDDLEWARE, f"Middleware: {middleware_name}", {"action": action})

    def log_performance(self, operation: str, duration_ms: float) -> None:
        """記錄一次操作耗時，單位毫秒。"""
        self.debug(LogCategory.PERFORMANCE, f"Operation: {operation}", {"duration": duration_ms})

    def get_entries(self) -> List[LogEntry]:
        return list(self._entries)

    def clear_entries(self) -> None:
        self._entries = []

    def set_level(self, level: LogLevel) -> None:
        self._level = LogLevel(level)

    def set_categories(self, categories: Iterable[LogCategory]) -> None:
        self._categories = set(categories)

    def enable(self) -> None:
        self._enabled = True

    def disable(self) -> None:
        self._enabled = False


class NullLogger:
    """不做任何事的日誌接收端。"""

    def log_action(self, action: Any, prev_state: Any, next_state: Any) -> None:
        pass

    def log_performance(self, operation: str, duration_ms: float) -> None:
        pass
