"""
基於 PyStately 的中介軟體定義模組。

此模組負責把中介軟體組合成單一的 dispatch 入口，並提供內建中介軟體，
用於在動作分發過程中插入日誌記錄、錯誤處理、性能監控等邏輯。

中介軟體的約定是 (store, next) -> dispatch：
先註冊的中介軟體在最外層，最先看到 action，並自行決定是否呼叫 next。
不呼叫 next 即中止整條鏈。
"""

import contextlib
import functools
import inspect
import logging
import time
from typing import Any, Callable, Dict, Generator, Iterable, List, Mapping, Optional

from .actions import create_action
from .errors import MiddlewareError
from .logger import Logger
from .types import (
    ActionContext, Dispatch, LoggingSink, MiddlewareHandler, NextHandler, StoreLike
)

_logger = logging.getLogger(__name__)


def _middleware_name(mw: Any) -> str:
    return getattr(mw, "__name__", type(mw).__name__)


def resolve_middleware(middlewares: Iterable[Any]) -> List[MiddlewareHandler]:
    """
    將中介軟體類別實例化，並檢查每一項都可呼叫。

    Args:
        middlewares: 中介軟體函數、實例或類別

    Returns:
        可直接組合的中介軟體列表

    Raises:
        MiddlewareError: 某一項不可呼叫
    """
    resolved = []
    for mw in middlewares:
        # 接受類和實例，如果是類則直接實例化
        inst = mw() if inspect.isclass(mw) else mw
        if not callable(inst):
            raise MiddlewareError(
                "Middleware must be callable as (store, next) -> dispatch",
                middleware_name=_middleware_name(inst),
            )
        resolved.append(inst)
    return resolved


def compose_middleware(
    store: StoreLike, middlewares: List[MiddlewareHandler], dispatch: Dispatch
) -> Dispatch:
    """
    從最後一個中介軟體開始向前包裹，得到組合後的 dispatch。

    累加器是「下一層」的 dispatch，初始值為原始 dispatch；
    對 [A, B, C] 依序計算 C(store, raw)、B(store, ...)、A(store, ...)，
    因此實際呼叫順序為 A -> B -> C -> raw。

    Args:
        store: 傳給每個中介軟體的 Store
        middlewares: 依註冊順序排列的中介軟體
        dispatch: 最內層的原始 dispatch

    Returns:
        組合後的 dispatch

    Raises:
        MiddlewareError: 中介軟體沒有返回可呼叫的 dispatch
    """
    def wrap(next_dispatch: NextHandler, mw: MiddlewareHandler) -> NextHandler:
        wrapped = mw(store, next_dispatch)
        if not callable(wrapped):
            raise MiddlewareError(
                "Middleware must return a dispatch callable",
                middleware_name=_middleware_name(mw),
            )
        return wrapped

    composed = functools.reduce(wrap, reversed(middlewares), dispatch)
    _logger.debug("Composed %d middleware", len(middlewares))
    return composed


def apply_middleware(*middlewares: Any) -> Callable[[Any], Any]:
    """
    返回一個 store enhancer，把中介軟體加到指定的 Store 上。

    範例:
        >>> store = apply_middleware(LoggerMiddleware, ThunkMiddleware)(create_store())
    """
    def enhancer(store: Any) -> Any:
        store.apply_middleware(*middlewares)
        return store
    return enhancer


# ———— Base Middleware ————
class BaseMiddleware:
    """
    基礎中介類，定義所有中介可能實現的鉤子。

    預設的 __call__ 會在呼叫 next 前後觸發 on_next、on_complete，
    出錯時觸發 on_error 並重新拋出。需要攔截或改寫 action 的子類
    可直接覆寫 __call__。
    """

    def __init__(self) -> None:
        self._contexts: List[ActionContext] = []

    @property
    def current_context(self) -> Optional[ActionContext]:
        """目前正在處理的最內層 action 上下文。"""
        contexts = getattr(self, "_contexts", None)
        return contexts[-1] if contexts else None

    def on_next(self, action: Any, prev_state: Any) -> None:
        """
        在 action 傳給下一層之前調用。

        Args:
            action: 正在 dispatch 的 Action
            prev_state: dispatch 之前的 store 狀態
        """
        pass

    def on_complete(self, next_state: Any, action: Any) -> None:
        """
        在下一層處理完 action 之後調用。

        Args:
            next_state: dispatch 之後的最新 store 狀態
            action: 剛剛 dispatch 的 Action
        """
        pass

    def on_error(self, error: Exception, action: Any) -> None:
        """
        如果 dispatch 過程中拋出異常，則調用此鉤子。

        Args:
            error: 拋出的異常
            action: 導致異常的 Action
        """
        pass

    @contextlib.contextmanager
    def action_context(self, action: Any, prev_state: Any) -> Generator[ActionContext, None, None]:
        """
        以上下文管理器的形式包住一次 dispatch 的生命週期。

        上下文以堆疊保存，巢狀 dispatch 時各自獨立。

        Yields:
            ActionContext: 可在內外之間傳遞資料的字典
        """
        if not hasattr(self, "_contexts"):
            self._contexts = []
        context: ActionContext = {
            "action": action,
            "prev_state": prev_state,
            "next_state": None,
            "result": None,
            "error": None,
            "started_at": time.perf_counter(),
        }
        self._contexts.append(context)
        try:
            self.on_next(action, prev_state)
            yield context
            if context["next_state"] is not None:
                self.on_complete(context["next_state"], action)
        except Exception as err:
            context["error"] = err
            self.on_error(err, action)
            raise
        finally:
            self._contexts.pop()

    def __call__(self, store: StoreLike, next_dispatch: NextHandler) -> Dispatch:
        def dispatch(action: Any) -> Any:
            with self.action_context(action, store.get_state()) as context:
                context["result"] = next_dispatch(action)
                context["next_state"] = store.get_state()
            return context["result"]
        return dispatch


def _elapsed_ms(context: Optional[ActionContext]) -> float:
    if not context:
        return 0.0
    return (time.perf_counter() - context["started_at"]) * 1000


def _action_type(action: Any) -> str:
    if isinstance(action, Mapping):
        return str(action.get("type"))
    return getattr(action, "type", None) or type(action).__name__


# ———— LoggerMiddleware ————
class LoggerMiddleware(BaseMiddleware):
    """
    日誌中介，在每個 action 處理完後把前後狀態與耗時交給日誌接收端。

    使用場景:
    - 偵錯時需要觀察每次 state 的變化。
    - 確保 action 的執行順序正確。
    """

    def __init__(self, logger: Optional[LoggingSink] = None) -> None:
        """
        Args:
            logger: 日誌接收端，預設建立一個新的 Logger
        """
        super().__init__()
        self.logger = logger if logger is not None else Logger()

    def on_complete(self, next_state: Any, action: Any) -> None:
        context = self.current_context
        prev_state = context["prev_state"] if context else None
        self.logger.log_action(action, prev_state, next_state)
        self.logger.log_performance("Action Processing", _elapsed_ms(context))

    def on_error(self, error: Exception, action: Any) -> None:
        _logger.error("Error while dispatching %s: %s", _action_type(action), error)


def create_logger(logger: Optional[LoggingSink] = None) -> LoggerMiddleware:
    """建立日誌中介軟體。"""
    return LoggerMiddleware(logger)


# ———— PerformanceMonitorMiddleware ————
class PerformanceMonitorMiddleware(BaseMiddleware):
    """
    性能監控中間件，按 action 類型統計處理時間。
    """

    def __init__(self, threshold_ms: float = 100, log_all: bool = False,
                 logger: Optional[LoggingSink] = None) -> None:
        """
        初始化 PerformanceMonitorMiddleware。

        Args:
            threshold_ms: 性能警告閾值，單位為毫秒，預設為 100 毫秒
            log_all: 是否記錄所有 action 的耗時，預設只記錄超過閾值的
            logger: 可選的日誌接收端，每次完成都會收到 log_performance
        """
        super().__init__()
        self.threshold_ms = threshold_ms
        self.log_all = log_all
        self.logger = logger
        self.metrics: Dict[str, List[float]] = {}

    def on_complete(self, next_state: Any, action: Any) -> None:
        elapsed_ms = _elapsed_ms(self.current_context)
        action_type = _action_type(action)
        self.metrics.setdefault(action_type, []).append(elapsed_ms)

        if self.logger is not None:
            self.logger.log_performance(action_type, elapsed_ms)
        if elapsed_ms > self.threshold_ms:
            _logger.warning(
                "Action %s exceeded threshold (%sms): took %.2fms",
                action_type, self.threshold_ms, elapsed_ms,
            )
        elif self.log_all:
            _logger.info("Action %s took %.2fms", action_type, elapsed_ms)

    def on_error(self, error: Exception, action: Any) -> None:
        _logger.error(
            "Action %s failed after %.2fms: %s",
            _action_type(action), _elapsed_ms(self.current_context), error,
        )

    def get_metrics(self) -> Dict[str, Dict[str, float]]:
        """
        獲取性能指標統計信息。

        Returns:
            {action_type: {"avg", "max", "min", "count"}}
        """
        result = {}
        for action_type, times in self.metrics.items():
            if not times:
                continue
            result[action_type] = {
                "avg": sum(times) / len(times),
                "max": max(times),
                "min": min(times),
                "count": len(times),
            }
        return result


# ———— ThunkMiddleware ————
class ThunkMiddleware(BaseMiddleware):
    """
    支援 dispatch 函數 (thunk)，可以在 thunk 內多次 dispatch 或呼叫 set_state。

    範例:
        ```python
        def increment_twice(dispatch, get_state):
            dispatch({"type": "INCREMENT"})
            dispatch({"type": "INCREMENT"})

        store.dispatch(increment_twice)
        ```
    """

    def __call__(self, store: StoreLike, next_dispatch: NextHandler) -> Dispatch:
        def dispatch(action: Any) -> Any:
            if callable(action):
                # 透過 store.dispatch 讓 thunk 內的 action 重新走完整條鏈
                return action(store.dispatch, store.get_state)
            return next_dispatch(action)
        return dispatch


# ———— ErrorMiddleware ————
global_error = create_action("[Error] GlobalError", lambda info: info)


class ErrorMiddleware(BaseMiddleware):
    """
    捕獲 dispatch 過程中的異常，dispatch 全域錯誤 Action 後重新拋出。

    使用場景:
    - 當需要統一記錄所有異常，例如讓監聽器把錯誤顯示給使用者。
    """

    def __init__(self) -> None:
        super().__init__()
        self.store: Optional[StoreLike] = None

    def __call__(self, store: StoreLike, next_dispatch: NextHandler) -> Dispatch:
        self.store = store
        return super().__call__(store, next_dispatch)

    def on_error(self, error: Exception, action: Any) -> None:
        # 錯誤 Action 本身失敗時不再遞迴
        if self.store is None or _action_type(action) == global_error.type:
            return
        error_info = {
            "error": str(error),
            "error_type": type(error).__name__,
            "action": _action_type(action),
            "timestamp": time.time(),
        }
        try:
            self.store.dispatch(global_error(error_info))
        except Exception:
            # 保留原本的例外給呼叫端
            _logger.exception("Failed to dispatch %s for %s", global_error.type, _action_type(action))
