"""
PyStately 的共用型別定義模組。

集中定義 State、Listener、Middleware 等型別別名與協議，
供 store、devtools 與 middleware 模組共同使用。
"""
from typing import (
    Any, Callable, Dict, Optional, TYPE_CHECKING, TypeVar, Union
)
from typing_extensions import Protocol, TypedDict

if TYPE_CHECKING:
    from .actions import Action

# 狀態是以字串為鍵的映射
State = Dict[str, Any]
S = TypeVar("S", bound=Dict[str, Any])

# 狀態監聽器，接收 (最新狀態, 觸發的 Action)
Listener = Callable[[State, Optional["Action"]], None]
# 取消訂閱函數
Unsubscribe = Callable[[], None]

# 分發函數與中介軟體鏈中的下一層
Dispatch = Callable[[Any], Any]
NextHandler = Callable[[Any], Any]

# 部分狀態更新：映射或接收當前狀態並返回映射的函數
PartialState = Dict[str, Any]
StateUpdater = Union[PartialState, Callable[[State], PartialState]]


class HistoryChange(TypedDict):
    """DevTools 廣播給監聽者的變更通知。"""
    type: str
    state: State
    action: Optional["Action"]


HistoryListener = Callable[[HistoryChange], None]


class ActionContext(TypedDict, total=False):
    """中介軟體 action_context 在 dispatch 前後傳遞的上下文。"""
    action: Any
    prev_state: Any
    next_state: Any
    result: Any
    error: Optional[Exception]
    started_at: float


class StoreLike(Protocol):
    """中介軟體所看到的 Store 介面。"""

    def get_state(self) -> State: ...

    def set_state(self, updater: StateUpdater) -> Any: ...

    def subscribe(self, listener: Listener) -> Unsubscribe: ...

    def dispatch(self, action: Any) -> Any: ...


# 中介軟體：(store, next) -> dispatch
MiddlewareHandler = Callable[[StoreLike, NextHandler], NextHandler]


class LoggingSink(Protocol):
    """外部日誌接收端，核心只呼叫、不依賴返回值。"""

    def log_action(self, action: Any, prev_state: Any, next_state: Any) -> None: ...

    def log_performance(self, operation: str, duration_ms: float) -> None: ...
