"""
PyStately 錯誤處理模組。

所有錯誤都在呼叫端同步拋出，核心不做任何重試或吞錯。
"""
import traceback
from typing import Any, Dict, Optional


class StatelyError(Exception):
    """
    所有 PyStately 異常的基礎類。

    Attributes:
        message: 錯誤訊息
        details: 結構化的錯誤細節
        traceback: 建立時的呼叫堆疊
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.traceback = "".join(traceback.format_stack()[:-1])

    def to_dict(self) -> Dict[str, Any]:
        """
        將錯誤轉為字典，方便寫入日誌。

        Returns:
            包含錯誤類型、訊息與細節的字典
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
            "traceback": self.traceback,
        }

    def __str__(self) -> str:
        if not self.details:
            return self.message
        detail_text = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
        return f"{self.message} ({detail_text})"


class ActionError(StatelyError):
    """Action 缺少 type、type 為空或無法轉換為 Action。"""

    def __init__(self, message: str, action_type: Optional[str] = None, payload: Any = None, **kwargs: Any) -> None:
        details = {"action_type": action_type}
        if payload is not None:
            details["payload"] = payload
        details.update(kwargs)
        super().__init__(message, details)
        self.action_type = action_type
        self.payload = payload


class StoreError(StatelyError):
    """Store 操作收到不合約定的參數。"""

    def __init__(self, message: str, operation: str, **kwargs: Any) -> None:
        super().__init__(message, {"operation": operation, **kwargs})
        self.operation = operation


class MiddlewareError(StatelyError):
    """中介軟體無法組裝進 dispatch 鏈。"""

    def __init__(self, message: str, middleware_name: str, **kwargs: Any) -> None:
        super().__init__(message, {"middleware_name": middleware_name, **kwargs})
        self.middleware_name = middleware_name


class ConfigurationError(StatelyError):
    """配置相關的錯誤。"""

    def __init__(self, message: str, component: str, config_key: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message, {"component": component, "config_key": config_key, **kwargs})
        self.component = component
        self.config_key = config_key
