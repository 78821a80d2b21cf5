"""
PyStately 範例：待辦事項應用，展示內建中介軟體的使用
"""

import logging
from pathlib import Path
import sys
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))
import uuid
from typing import List, Optional

from pydantic import BaseModel

from pystately import (
    ErrorMiddleware,
    LogLevel,
    Logger,
    LoggerMiddleware,
    PerformanceMonitorMiddleware,
    ThunkMiddleware,
    create_action,
    create_store,
    global_error,
)


# ====== 1. 定義狀態模型 ======
class TodoItem(BaseModel):
    id: str
    text: str
    completed: bool = False


class TodoState(BaseModel):
    todos: List[TodoItem] = []
    loading: bool = False
    error: Optional[str] = None


# ====== 2. 定義 Actions ======
add_todo = create_action("[Todo] Add", lambda text: {"id": uuid.uuid4().hex[:8], "text": text})
toggle_todo = create_action("[Todo] Toggle", lambda todo_id: todo_id)
fail_todo = create_action("[Todo] Fail")
loading = create_action("[Todo] Loading")


# ====== 3. 把 action 轉為狀態更新的中介軟體 ======
def todo_middleware(store, next_dispatch):
    def dispatch(action):
        if action.type == add_todo.type:
            item = TodoItem(**action.payload)
            store.set_state(lambda s: {"todos": s["todos"] + [item]})
        elif action.type == toggle_todo.type:
            store.set_state(lambda s: {"todos": [
                t.model_copy(update={"completed": not t.completed}) if t.id == action.payload else t
                for t in s["todos"]
            ]})
        elif action.type == fail_todo.type:
            raise RuntimeError("待辦事項處理失敗")
        return next_dispatch(action)
    return dispatch


# ====== 4. Thunk：一次加入多筆 ======
def add_many(texts):
    def thunk(dispatch, get_state):
        dispatch(loading())
        for text in texts:
            dispatch(add_todo(text))
        return len(get_state()["todos"])
    return thunk


if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s %(message)s")

    monitor = PerformanceMonitorMiddleware(threshold_ms=5, log_all=True)
    store = create_store(
        initial_state=TodoState(),
        dev_tools=True,
        middleware=[
            ThunkMiddleware,
            ErrorMiddleware,
            LoggerMiddleware(Logger(level=LogLevel.DEBUG, persist=True)),
            monitor,
            todo_middleware,
        ],
    )

    def on_error(state, action):
        if action.type == global_error.type:
            store.set_state({"error": action.payload["error"]})

    store.subscribe(on_error)

    print("總數:", store.dispatch(add_many(["買牛奶", "寫範例"])))
    first_id = store.get_state()["todos"][0].id
    store.dispatch(toggle_todo(first_id))

    try:
        store.dispatch(fail_todo())
    except RuntimeError as err:
        print("捕獲錯誤:", err)

    print("\n==== 最終狀態 ====")
    print(store.state)
    print("\n==== 性能指標 ====")
    print(monitor.get_metrics())
    print("\n==== DevTools 歷史 ====")
    for action in store.devtools.get_action_history():
        print(action.type)
