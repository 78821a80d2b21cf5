import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

import json
import time
from counter_store import store, increment, increment_by, reset
from counter_selectors import get_count, get_counter_info

if __name__ == "__main__":
    # 訂閱狀態變化
    store.select(get_count).subscribe(
        on_next=lambda t: print(f"計數變化: {t[0]} -> {t[1]}")
    )

    store.select(get_counter_info).subscribe(
        on_next=lambda info_tuple: print(
            f"計數器信息更新: {json.dumps(info_tuple[1], ensure_ascii=False, indent=2)}"
        )
    )

    # DevTools 有自己的監聽器
    store.devtools.subscribe(lambda change: print(f"DevTools: {change['action'].type}"))

    # 分發actions
    print("\n==== 開始測試基本操作 ====")
    store.dispatch(increment())
    store.dispatch(increment_by(5))
    store.dispatch(reset(10))
    store.set_state({"last_updated": time.time()})

    # 打印歷史
    print("\n==== 歷史紀錄 ====")
    for index, action in enumerate(reversed(store.devtools.get_action_history())):
        print(f"{index}: {action.type} -> {store.devtools.get_state_at(index)}")

    # 打印最終狀態
    print("\n==== 最終狀態 ====")
    print(store.state)
