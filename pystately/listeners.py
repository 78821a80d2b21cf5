"""
監聽器註冊表。

每次訂閱取得一個穩定的遞增 id，通知時先快照 id 再逐一檢查是否仍已註冊，
因此監聽器在回呼中取消自己或其他監聽器都不會影響其餘監聽器。
"""
import itertools
from typing import Any, Callable, Dict

from .types import Unsubscribe


class ListenerRegistry:
    """
    以 id 為索引的監聽器集合，按註冊順序通知。

    通知過程中：
    - 被取消的監聽器不會再被呼叫；
    - 新加入的監聽器從下一輪通知開始生效；
    - 任一監聽器拋出的例外直接向上傳遞，後續監聽器不再執行。
    """

    def __init__(self) -> None:
        self._ids = itertools.count()
        self._listeners: Dict[int, Callable[..., Any]] = {}

    def __len__(self) -> int:
        return len(self._listeners)

    def add(self, listener: Callable[..., Any]) -> Unsubscribe:
        """
        註冊監聽器。

        Args:
            listener: 要註冊的回呼

        Returns:
            冪等的取消訂閱函數，只移除這一次註冊
        """
        token = next(self._ids)
        self._listeners[token] = listener

        def unsubscribe() -> None:
            self._listeners.pop(token, None)

        return unsubscribe

    def notify(self, *args: Any) -> None:
        """依註冊順序呼叫所有監聽器。"""
        for token in list(self._listeners):
            listener = self._listeners.get(token)
            if listener is None:
                # 已在本輪通知中被取消
                continue
            listener(*args)

