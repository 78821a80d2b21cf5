# pystately/immutable_utils.py
from typing import Any

from immutables import Map
from pydantic import BaseModel


def to_dict(obj: Any) -> Any:
    """將 Map、Pydantic 模型及其巢狀結構轉換為普通字典"""
    if isinstance(obj, BaseModel):
        return {k: to_dict(v) for k, v in obj.model_dump().items()}
    elif isinstance(obj, (Map, dict)):
        return {k: to_dict(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [to_dict(i) for i in obj]
    elif isinstance(obj, frozenset):
        return {to_dict(i) for i in obj}
    return obj


def to_state(obj: Any) -> Any:
    """
    只轉換最外層，讓 Map 或 Pydantic 模型可作為部分狀態使用。

    淺合併只看頂層鍵，巢狀值保持原樣。
    """
    if isinstance(obj, BaseModel):
        return {name: getattr(obj, name) for name in type(obj).model_fields}
    elif isinstance(obj, Map):
        return dict(obj.items())
    return obj
