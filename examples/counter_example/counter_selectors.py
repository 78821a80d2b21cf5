# 定義Selectors
get_count = lambda state: state.get("count", 0)


def get_counter_info(state):
    return {"count": get_count(state), "last_updated": state.get("last_updated")}
