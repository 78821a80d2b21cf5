"""
Store 的配置模型。

開發工具是否啟用由宿主程式在建構時決定：明確給定 dev_tools，
或提供 environment 讓配置解析；核心本身不讀取任何環境變數。
"""
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .actions import now_ms
from .devtools import DEFAULT_MAX_HISTORY_SIZE
from .errors import ConfigurationError
from .immutable_utils import to_state

DEVELOPMENT = "development"
PRODUCTION = "production"


class StoreOptions(BaseModel):
    """
    建立 Store 時的配置。

    Attributes:
        initial_state: 初始狀態，預設為空字典
        dev_tools: 是否啟用 DevTools，None 時依 environment 決定
        environment: 部署環境訊號，"development" 時預設啟用 DevTools
        middleware: 依註冊順序排列的中介軟體
        max_history_size: DevTools 保留的最大歷史筆數
        name: DevTools 顯示名稱
        thread_safe: 是否以每實例的可重入鎖保護狀態替換與通知
        clock: 產生 epoch 毫秒時間戳的函數
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    initial_state: Dict[str, Any] = Field(default_factory=dict)
    dev_tools: Optional[bool] = None
    environment: str = PRODUCTION
    middleware: List[Any] = Field(default_factory=list)
    max_history_size: int = Field(default=DEFAULT_MAX_HISTORY_SIZE, ge=0)
    name: str = "Stately Store"
    thread_safe: bool = False
    clock: Callable[[], int] = now_ms

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except PydanticValidationError as err:
            first = err.errors()[0]
            key = ".".join(str(part) for part in first.get("loc", ()))
            raise ConfigurationError(
                f"Invalid store options: {first.get('msg')}",
                component="Store",
                config_key=key or None,
            ) from err

    @field_validator("initial_state", mode="before")
    @classmethod
    def _coerce_initial_state(cls, value: Any) -> Any:
        if value is None:
            return {}
        return to_state(value)

    @property
    def dev_tools_enabled(self) -> bool:
        if self.dev_tools is not None:
            return self.dev_tools
        return self.environment == DEVELOPMENT

    @classmethod
    def parse(cls, **kwargs: Any) -> "StoreOptions":
        """
        以關鍵字建立配置，等同直接呼叫建構子。

        Raises:
            ConfigurationError: 任一欄位不合法
        """
        return cls(**kwargs)
