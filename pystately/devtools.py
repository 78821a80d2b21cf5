"""
PyStately 的 DevTools：有上限的狀態／動作歷史紀錄器。

記錄每次 setState 與 dispatch 產生的 (action, state) 配對，
並擁有獨立於 Store 的監聽器集合。
"""
import logging
from typing import Any, List, Optional

from .actions import Action
from .errors import ConfigurationError
from .listeners import ListenerRegistry
from .types import HistoryChange, HistoryListener, State, Unsubscribe

_logger = logging.getLogger(__name__)

STATE_CHANGED = "STATE_CHANGED"
DEFAULT_MAX_HISTORY_SIZE = 100


def _noop_unsubscribe() -> None:
    pass


class DevTools:
    """
    記錄狀態與動作歷史，用於偵錯與狀態檢視。

    兩條歷史序列永遠等長，超出上限時從最舊的一端成對淘汰。
    停用時 record 與 subscribe 皆不生效，但既有歷史仍可讀取。
    """

    def __init__(
        self,
        enabled: bool = False,
        name: str = "Stately Store",
        max_history_size: int = DEFAULT_MAX_HISTORY_SIZE,
    ) -> None:
        """
        初始化 DevTools。

        Args:
            enabled: 是否啟用紀錄
            name: 顯示名稱
            max_history_size: 保留的最大歷史筆數
        """
        _check_size(max_history_size)
        self._enabled = enabled
        self._name = name
        self._max_history_size = max_history_size
        self._state_history: List[State] = []
        self._action_history: List[Action] = []
        self._listeners = ListenerRegistry()

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def name(self) -> str:
        return self._name

    @property
    def max_history_size(self) -> int:
        return self._max_history_size

    def record(self, action: Action, state: State) -> None:
        """
        記錄一次狀態變更及觸發它的動作。

        Args:
            action: 觸發變更的 Action
            state: 變更後（或 dispatch 當下）的狀態
        """
        if not self._enabled:
            return

        self._state_history.append(state)
        self._action_history.append(action)
        self._evict()

        self._listeners.notify(HistoryChange(type=STATE_CHANGED, state=state, action=action))

    def subscribe(self, listener: HistoryListener) -> Unsubscribe:
        """
        訂閱歷史變更通知。

        Args:
            listener: 接收 {"type", "state", "action"} 的回呼

        Returns:
            取消訂閱函數；停用狀態下返回不做任何事的函數
        """
        if not self._enabled:
            return _noop_unsubscribe
        return self._listeners.add(listener)

    def get_state_history(self) -> List[State]:
        """返回狀態歷史的副本，最舊的在前。"""
        return list(self._state_history)

    def get_action_history(self) -> List[Action]:
        """返回動作歷史的副本，最舊的在前。"""
        return list(self._action_history)

    def get_state_at(self, index: int) -> Optional[State]:
        """
        取得歷史中的某個狀態。

        Args:
            index: 0 代表最近一筆

        Returns:
            該位置的狀態，超出範圍時返回 None
        """
        return _from_newest(self._state_history, index)

    def get_action_at(self, index: int) -> Optional[Action]:
        """
        取得歷史中的某個動作。

        Args:
            index: 0 代表最近一筆

        Returns:
            該位置的動作，超出範圍時返回 None
        """
        return _from_newest(self._action_history, index)

    def clear_history(self) -> None:
        """清空兩條歷史序列。"""
        self._state_history = []
        self._action_history = []

    def set_max_history_size(self, size: int) -> None:
        """
        設定保留的最大歷史筆數，並立即淘汰超出的舊紀錄。

        Args:
            size: 最大筆數，必須 >= 0
        """
        _check_size(size)
        self._max_history_size = size
        self._evict()

    def set_enabled(self, enabled: bool) -> None:
        """啟用或停用紀錄；停用不會清除既有歷史。"""
        self._enabled = enabled

    def _evict(self) -> None:
        excess = len(self._state_history) - self._max_history_size
        if excess <= 0:
            return
        # 兩條序列成對淘汰
        del self._state_history[:excess]
        del self._action_history[:excess]
        _logger.debug("%s: evicted %d history entries", self._name, excess)


def _from_newest(sequence: List[Any], index: int) -> Any:
    if index < 0 or index >= len(sequence):
        return None
    return sequence[len(sequence) - 1 - index]


def _check_size(size: int) -> None:
    if isinstance(size, bool) or not isinstance(size, int) or size < 0:
        raise ConfigurationError(
            f"max_history_size must be a non-negative integer, got {size!r}",
            component="DevTools",
            config_key="max_history_size",
        )
