import contextlib
import logging
import threading
from typing import Any, Callable, Generic, List, Mapping, Optional, Union

from reactivex import Observable, Subject
from reactivex import operators as ops

from .actions import SET_STATE, Action, to_action
from .config import StoreOptions
from .devtools import DevTools
from .errors import ConfigurationError, StoreError
from .immutable_utils import to_state
from .listeners import ListenerRegistry
from .middleware import compose_middleware, resolve_middleware
from .types import Dispatch, Listener, MiddlewareHandler, PartialState, S, StateUpdater, Unsubscribe

_logger = logging.getLogger(__name__)


class Store(Generic[S]):
    """
    狀態容器，持有唯一的當前狀態並通知訂閱者狀態變更。

    set_state 是唯一會改變狀態的途徑；dispatch 只負責記錄與通知，
    需要由中介軟體或訂閱者在處理 action 時自行呼叫 set_state。

    每次呼叫的可觀察效果依序為：寫入 DevTools 歷史、推送到 select()/actions
    的資料流、通知監聽器。監聽器拋出的例外會直接傳回呼叫端，
    後續監聽器不再被通知，但狀態與歷史已經寫入完成。

    Attributes:
        dispatch: 分發 action 的入口；配置了中介軟體時為組合後的版本
    """

    dispatch: Dispatch

    def __init__(self, options: Optional[StoreOptions] = None):
        """
        初始化 Store 實例。

        Args:
            options: Store 配置，預設為 StoreOptions()
        """
        if options is None:
            options = StoreOptions()
        self._options = options
        self._clock = options.clock
        # 初始化內部狀態
        self._state: S = dict(options.initial_state)
        self._listeners = ListenerRegistry()
        self._devtools = DevTools(
            enabled=options.dev_tools_enabled,
            name=options.name,
            max_history_size=options.max_history_size,
        )
        # 需要時以可重入鎖保護狀態替換與通知，監聽器內仍可再呼叫 set_state
        self._lock = threading.RLock() if options.thread_safe else contextlib.nullcontext()
        # 狀態流，發送 (old_state, new_state)
        self._state_subject: Subject = Subject()
        # 動作流
        self._action_subject: Subject = Subject()
        # 中介軟體列表
        self._middleware: List[MiddlewareHandler] = []
        # 原始的 dispatch 方法
        self._raw_dispatch = self._dispatch_core
        self.dispatch = self._raw_dispatch

        if options.middleware:
            self.apply_middleware(*options.middleware)

    @property
    def state(self) -> S:
        """當前狀態，等同 get_state()。"""
        return self._state

    @property
    def devtools(self) -> DevTools:
        """此 Store 的歷史紀錄器。"""
        return self._devtools

    @property
    def actions(self) -> Observable:
        """每個到達原始 dispatch 或由 set_state 產生的 action。"""
        return self._action_subject.pipe(ops.as_observable())

    def get_state(self) -> S:
        """
        返回當前狀態的參考，不做防禦性複製。

        呼叫端必須視為唯讀：直接修改返回的映射會繞過歷史與通知，
        其後果未定義。
        """
        return self._state

    def set_state(self, updater: StateUpdater) -> Action:
        """
        以淺合併更新狀態並通知訂閱者。

        Args:
            updater: 部分狀態映射，或接收當前狀態並返回部分狀態的函數。
                immutables.Map 與 Pydantic 模型會先轉成字典。

        Returns:
            合成的 SET_STATE Action

        Raises:
            StoreError: updater（或其返回值）不是映射
        """
        with self._lock:
            partial = updater(self._state) if callable(updater) else updater
            partial = self._coerce_partial(partial)

            prev_state = self._state
            # 淺合併：巢狀值整個替換，不遞迴合併
            next_state = {**prev_state, **partial}
            self._state = next_state

            action = Action(type=SET_STATE, payload=partial, timestamp=self._clock())
            _logger.debug("set_state keys=%s", list(partial))

            self._devtools.record(action, next_state)
            # 先推送資料流再通知監聽器，監聽器內巢狀的 set_state 才會排在後面
            self._action_subject.on_next(action)
            self._state_subject.on_next((prev_state, next_state))
            self._listeners.notify(next_state, action)
        return action

    def subscribe(self, listener: Listener) -> Unsubscribe:
        """
        訂閱狀態變更。

        Args:
            listener: 以 (state, action) 呼叫的回呼

        Returns:
            冪等的取消訂閱函數
        """
        if not callable(listener):
            raise StoreError("Listener must be callable", operation="subscribe")
        return self._listeners.add(listener)

    def _dispatch_core(self, action: Any) -> Action:
        """
        原始 dispatch：補上時間戳、記錄歷史並通知訂閱者，不改變狀態。

        Args:
            action: Action 或含 type 鍵的映射

        Returns:
            補上時間戳後的 Action

        Raises:
            ActionError: action 缺少 type 或類型不受支援
        """
        action = to_action(action)
        with self._lock:
            if action.timestamp is None:
                action = action.with_timestamp(self._clock())
            state = self._state
            _logger.debug("dispatch %s", action.type)

            self._devtools.record(action, state)
            self._action_subject.on_next(action)
            self._listeners.notify(state, action)
        return action

    def apply_middleware(self, *middlewares: Any) -> None:
        """
        一次註冊多個中介軟體，並重建 dispatch 鏈。

        Args:
            *middlewares: (store, next) -> dispatch 形式的函數、實例或類別
        """
        self._middleware.extend(resolve_middleware(middlewares))
        self.dispatch = compose_middleware(self, self._middleware, self._raw_dispatch)

    def select(self, selector: Optional[Callable[[S], Any]] = None) -> Observable:
        """
        選擇狀態的一部分進行觀察。

        Args:
            selector: 一個函數，接收整個狀態並返回希望觀察的部分。

        Returns:
            一個可觀察對象，發送 (舊值, 新值)；只有新值改變時才發出。
            未提供 selector 時發送完整的 (old_state, new_state)。
        """
        if selector is None:
            return self._state_subject.pipe(ops.as_observable())

        return self._state_subject.pipe(
            ops.map(lambda states: (selector(states[0]), selector(states[1]))),
            ops.distinct_until_changed(lambda pair: pair[1]),
        )

    @staticmethod
    def _coerce_partial(partial: Any) -> PartialState:
        partial = to_state(partial)
        if not isinstance(partial, Mapping):
            raise StoreError(
                f"set_state expects a mapping or a function returning one, got {type(partial).__name__}",
                operation="set_state",
            )
        return dict(partial)


def create_store(options: Union[StoreOptions, Mapping[str, Any], None] = None, **kwargs: Any) -> Store:
    """
    創建一個新的 Store 實例。

    Args:
        options: StoreOptions 或等價的映射
        **kwargs: 直接以關鍵字給定的配置欄位

    Returns:
        Store: 新創建的 Store 實例。

    範例:
        >>> store = create_store(initial_state={"count": 0}, dev_tools=True)
        >>> store.set_state(lambda s: {"count": s["count"] + 1})
    """
    if isinstance(options, StoreOptions):
        if kwargs:
            raise ConfigurationError(
                "Pass either a StoreOptions instance or keyword options, not both",
                component="Store",
            )
        return Store(options)
    fields = dict(options or {})
    fields.update(kwargs)
    return Store(StoreOptions.parse(**fields))
