from pystately import create_action, create_store

# 定義Actions
increment = create_action("[Counter] Increment")
increment_by = create_action("[Counter] IncrementBy", lambda amount: amount)
reset = create_action("[Counter] Reset", lambda value: value)


def counter_middleware(store, next_dispatch):
    """把計數相關的 action 轉成 set_state，其他 action 原樣往下傳。"""
    def dispatch(action):
        if action.type == increment.type:
            store.set_state(lambda s: {"count": s["count"] + 1})
        elif action.type == increment_by.type:
            store.set_state(lambda s: {"count": s["count"] + action.payload})
        elif action.type == reset.type:
            store.set_state({"count": action.payload})
        return next_dispatch(action)
    return dispatch


# 創建Store
store = create_store(
    initial_state={"count": 0, "last_updated": None},
    environment="development",
    middleware=[counter_middleware],
)
