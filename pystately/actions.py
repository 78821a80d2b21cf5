"""
基於 PyStately 的 Action 定義模組。

此模組提供 Action 類別以及創建 Action 的功能。
Actions 是描述意圖或狀態變更的不可變對象，一經記錄便不再修改。
"""
import time
from typing import Any, Callable, Dict, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ActionError

# setState 合成的 Action 類型
SET_STATE = "SET_STATE"


def now_ms() -> int:
    """返回當前的 epoch 毫秒數。"""
    return int(time.time() * 1000)


class Action(BaseModel):
    """
    表示一個有類型、可選負載與時間戳的動作。

    屬性:
        type: 動作的類型字串，不可為空
        payload: 動作的負載數據（可選）
        timestamp: 分發時的 epoch 毫秒數，未設定時由 Store 補上
    """
    model_config = ConfigDict(frozen=True)

    type: str = Field(min_length=1)
    payload: Any = None
    timestamp: Optional[int] = None

    @field_validator("payload")
    @classmethod
    def _copy_payload(cls, value: Any) -> Any:
        # 淺複製可變的映射負載，呼叫端事後修改原字典不影響已記錄的 Action
        if isinstance(value, dict):
            return dict(value)
        return value

    def with_timestamp(self, timestamp: int) -> "Action":
        """
        返回帶有指定時間戳的新 Action，原對象保持不變。

        Args:
            timestamp: epoch 毫秒數

        Returns:
            新的 Action
        """
        return self.model_copy(update={"timestamp": timestamp})

    def __repr__(self) -> str:
        return f"Action(type='{self.type}', payload={self.payload!r}, timestamp={self.timestamp!r})"


ActionLike = Union[Action, Mapping[str, Any]]


def to_action(value: Any) -> Action:
    """
    將 Action 或含有 type 鍵的映射轉換為 Action。

    Args:
        value: Action 物件或形如 {"type": ..., "payload": ...} 的映射

    Returns:
        Action 物件

    Raises:
        ActionError: 缺少 type、type 為空或類型不受支援
    """
    if isinstance(value, Action):
        return value
    if isinstance(value, Mapping):
        try:
            return Action(**value)
        except (PydanticValidationError, TypeError) as err:
            raise ActionError(
                f"Invalid action: {err}",
                action_type=value.get("type"),
                payload=value.get("payload"),
            ) from err
    raise ActionError(
        f"Actions must be Action instances or mappings, got {type(value).__name__}",
        action_type=None,
    )


def create_action(action_type: str, prepare_fn: Optional[Callable[..., Any]] = None) -> Callable[..., Action]:
    """
    創建一個 Action 生成器函數。

    Args:
        action_type: Action 的類型標識符
        prepare_fn: 可選的預處理函數，用於在創建 Action 前處理輸入參數

    Returns:
        一個可調用的函數，用於生成指定類型的 Action

    範例:
        >>> increment = create_action("[Counter] Increment")
        >>> increment()  # 返回 Action(type='[Counter] Increment', payload=None, ...)
        >>>
        >>> add = create_action("[Counter] Add", lambda amount: amount)
        >>> add(5)  # 返回 Action(type='[Counter] Add', payload=5, ...)
    """
    if not action_type:
        raise ActionError("Action type must be a non-empty string", action_type=action_type)

    def action_creator(*args: Any, **kwargs: Any) -> Action:
        if prepare_fn:
            return Action(type=action_type, payload=prepare_fn(*args, **kwargs))
        if len(args) == 1 and not kwargs:
            return Action(type=action_type, payload=args[0])
        if args or kwargs:
            payload: Dict[Union[int, str], Any] = dict(zip(range(len(args)), args))
            payload.update(kwargs)
            return Action(type=action_type, payload=payload)
        # 無參數，無負載
        return Action(type=action_type)

    # 添加 type 屬性以便於識別
    action_creator.type = action_type  # type: ignore[attr-defined]

    return action_creator
