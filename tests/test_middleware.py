from __future__ import annotations

from typing import Any, Callable, List
from unittest.mock import Mock

import pytest

from pystately import (
    Action,
    BaseMiddleware,
    ErrorMiddleware,
    LoggerMiddleware,
    MiddlewareError,
    NullLogger,
    PerformanceMonitorMiddleware,
    ThunkMiddleware,
    apply_middleware,
    compose_middleware,
    create_logger,
    create_store,
    global_error,
)


def _tracing(name: str, calls: List[str]) -> Callable[[Any, Callable[[Any], Any]], Callable[[Any], Any]]:
    def middleware(store: Any, next_dispatch: Callable[[Any], Any]) -> Callable[[Any], Any]:
        def dispatch(action: Any) -> Any:
            calls.append(name)
            return next_dispatch(action)
        return dispatch
    middleware.__name__ = name
    return middleware


class _CapturingSink:
    def __init__(self) -> None:
        self.actions: List[Any] = []
        self.performance: List[Any] = []

    def log_action(self, action: Any, prev_state: Any, next_state: Any) -> None:
        self.actions.append((action, prev_state, next_state))

    def log_performance(self, operation: str, duration_ms: float) -> None:
        self.performance.append((operation, duration_ms))


def test_middleware_runs_in_registration_order() -> None:
    calls: List[str] = []
    store = create_store(middleware=[_tracing("A", calls), _tracing("B", calls), _tracing("C", calls)])
    store.subscribe(lambda s, a: calls.append("raw"))

    store.dispatch({"type": "X"})
    store.dispatch({"type": "Y"})

    assert calls == ["A", "B", "C", "raw", "A", "B", "C", "raw"]


def test_compose_middleware_folds_from_the_right() -> None:
    built: List[str] = []
    order: List[str] = []

    def make(name: str) -> Callable[[Any, Callable[[Any], Any]], Callable[[Any], Any]]:
        def middleware(store: Any, next_dispatch: Callable[[Any], Any]) -> Callable[[Any], Any]:
            built.append(name)
            def dispatch(action: Any) -> Any:
                order.append(name)
                return next_dispatch(action)
            return dispatch
        return middleware

    raw = Mock(return_value="done")
    dispatch = compose_middleware(Mock(), [make("A"), make("B")], raw)

    assert dispatch("act") == "done"
    assert built == ["B", "A"]
    assert order == ["A", "B"]
    raw.assert_called_once_with("act")


def test_middleware_that_skips_next_halts_the_chain() -> None:
    calls: List[str] = []

    def swallow(store: Any, next_dispatch: Callable[[Any], Any]) -> Callable[[Any], Any]:
        def dispatch(action: Any) -> None:
            calls.append("swallow")
        return dispatch

    store = create_store(dev_tools=True, middleware=[swallow, _tracing("inner", calls)])
    listener = Mock()
    store.subscribe(listener)

    store.dispatch({"type": "X"})

    assert calls == ["swallow"]
    listener.assert_not_called()
    assert store.devtools.get_action_history() == []


def test_middleware_can_drop_duplicate_actions() -> None:
    def dedupe(store: Any, next_dispatch: Callable[[Any], Any]) -> Callable[[Any], Any]:
        last = {}

        def dispatch(action: Any) -> Any:
            if last.get("type") == action["type"]:
                return None
            last["type"] = action["type"]
            return next_dispatch(action)
        return dispatch

    store = create_store(dev_tools=True, middleware=[dedupe])
    store.dispatch({"type": "A"})
    store.dispatch({"type": "A"})
    store.dispatch({"type": "B"})

    assert [a.type for a in store.devtools.get_action_history()] == ["A", "B"]


def test_middleware_can_transform_actions() -> None:
    def tag(store: Any, next_dispatch: Callable[[Any], Any]) -> Callable[[Any], Any]:
        return lambda action: next_dispatch({**action, "payload": "tagged"})

    store = create_store(middleware=[tag])
    listener = Mock()
    store.subscribe(listener)

    store.dispatch({"type": "A"})

    assert listener.call_args.args[1].payload == "tagged"


def test_middleware_can_update_state_through_set_state() -> None:
    def counter(store: Any, next_dispatch: Callable[[Any], Any]) -> Callable[[Any], Any]:
        def dispatch(action: Any) -> Any:
            if action["type"] == "INCREMENT":
                store.set_state(lambda s: {"count": s["count"] + 1})
            return next_dispatch(action)
        return dispatch

    store = create_store(initial_state={"count": 0}, middleware=[counter])
    store.dispatch({"type": "INCREMENT"})
    store.dispatch({"type": "OTHER"})

    assert store.get_state() == {"count": 1}


def test_middleware_does_not_change_other_store_methods() -> None:
    store = create_store(initial_state={"count": 0}, middleware=[_tracing("A", [])])
    store.set_state({"count": 5})
    assert store.get_state() == {"count": 5}


def test_middleware_errors_propagate() -> None:
    def broken(store: Any, next_dispatch: Callable[[Any], Any]) -> Callable[[Any], Any]:
        def dispatch(action: Any) -> Any:
            raise ValueError("bad middleware")
        return dispatch

    store = create_store(middleware=[broken])
    with pytest.raises(ValueError, match="bad middleware"):
        store.dispatch({"type": "X"})


def test_non_callable_middleware_is_rejected() -> None:
    with pytest.raises(MiddlewareError):
        create_store(middleware=[42])


def test_middleware_returning_non_callable_is_rejected() -> None:
    def bad(store: Any, next_dispatch: Callable[[Any], Any]) -> Any:
        return None

    bad.__name__ = "bad"
    with pytest.raises(MiddlewareError) as exc_info:
        create_store(middleware=[bad])
    assert exc_info.value.middleware_name == "bad"


def test_apply_middleware_enhancer_appends_to_chain() -> None:
    calls: List[str] = []
    store = create_store(middleware=[_tracing("first", calls)])
    enhanced = apply_middleware(_tracing("second", calls))(store)

    enhanced.dispatch({"type": "X"})

    assert enhanced is store
    assert calls == ["first", "second"]


def test_middleware_classes_are_instantiated() -> None:
    store = create_store(middleware=[ThunkMiddleware])
    assert isinstance(store._middleware[0], ThunkMiddleware)


def test_base_middleware_hooks_run_around_next() -> None:
    events: List[Any] = []

    class Recording(BaseMiddleware):
        def on_next(self, action: Any, prev_state: Any) -> None:
            events.append(("next", action["type"], prev_state))

        def on_complete(self, next_state: Any, action: Any) -> None:
            events.append(("complete", action["type"], next_state))

    def setter(store: Any, next_dispatch: Callable[[Any], Any]) -> Callable[[Any], Any]:
        def dispatch(action: Any) -> Any:
            store.set_state({"seen": action["type"]})
            return next_dispatch(action)
        return dispatch

    store = create_store(middleware=[Recording(), setter])
    store.dispatch({"type": "A"})

    assert events == [("next", "A", {}), ("complete", "A", {"seen": "A"})]


def test_base_middleware_on_error_sees_exception_and_reraises() -> None:
    errors: List[Exception] = []

    class Recording(BaseMiddleware):
        def on_error(self, error: Exception, action: Any) -> None:
            errors.append(error)

    store = create_store(middleware=[Recording])
    store.subscribe(Mock(side_effect=RuntimeError("listener failed")))

    with pytest.raises(RuntimeError):
        store.dispatch({"type": "A"})

    assert len(errors) == 1
    assert str(errors[0]) == "listener failed"


def test_logger_middleware_reports_to_sink() -> None:
    sink = _CapturingSink()
    store = create_store(initial_state={"count": 0}, middleware=[create_logger(sink)])

    result = store.dispatch({"type": "PING"})

    assert len(sink.actions) == 1
    action, prev_state, next_state = sink.actions[0]
    assert action == {"type": "PING"}
    assert prev_state == {"count": 0}
    assert next_state == {"count": 0}
    assert isinstance(result, Action)
    assert sink.performance[0][0] == "Action Processing"
    assert sink.performance[0][1] >= 0


def test_logger_middleware_with_null_sink_keeps_behaviour() -> None:
    with_null = create_store(initial_state={"count": 0}, dev_tools=True, middleware=[LoggerMiddleware(NullLogger())])
    without = create_store(initial_state={"count": 0}, dev_tools=True)

    for store in (with_null, without):
        store.dispatch({"type": "A"})
        store.set_state({"count": 1})

    assert with_null.get_state() == without.get_state()
    assert [a.type for a in with_null.devtools.get_action_history()] == ["A", "SET_STATE"]


def test_logger_middleware_defaults_to_fresh_logger() -> None:
    first = LoggerMiddleware()
    second = LoggerMiddleware()
    assert first.logger is not second.logger


def test_thunk_middleware_runs_functions() -> None:
    store = create_store(initial_state={"count": 0}, dev_tools=True, middleware=[ThunkMiddleware])

    def thunk(dispatch: Callable[[Any], Any], get_state: Callable[[], Any]) -> int:
        dispatch({"type": "STARTED"})
        return get_state()["count"]

    assert store.dispatch(thunk) == 0
    assert [a.type for a in store.devtools.get_action_history()] == ["STARTED"]


def test_error_middleware_dispatches_global_error_and_reraises() -> None:
    store = create_store(dev_tools=True, middleware=[ErrorMiddleware])

    def listener(state: Any, action: Any) -> None:
        if action.type == "FAIL":
            raise RuntimeError("nope")

    store.subscribe(listener)

    with pytest.raises(RuntimeError, match="nope"):
        store.dispatch({"type": "FAIL"})

    last = store.devtools.get_action_at(0)
    assert last.type == global_error.type
    assert last.payload["action"] == "FAIL"
    assert last.payload["error"] == "nope"


def test_error_middleware_keeps_original_error_when_report_fails(caplog: pytest.LogCaptureFixture) -> None:
    store = create_store(middleware=[ErrorMiddleware])

    def listener(state: Any, action: Any) -> None:
        if action.type == global_error.type:
            raise ValueError("report failed")
        raise RuntimeError("original")

    store.subscribe(listener)

    with pytest.raises(RuntimeError, match="original"):
        store.dispatch({"type": "FAIL"})
    assert "Failed to dispatch" in caplog.text


def test_performance_monitor_collects_metrics() -> None:
    sink = _CapturingSink()
    monitor = PerformanceMonitorMiddleware(threshold_ms=10_000, logger=sink)
    store = create_store(middleware=[monitor])

    store.dispatch({"type": "A"})
    store.dispatch({"type": "A"})
    store.dispatch({"type": "B"})

    metrics = monitor.get_metrics()
    assert metrics["A"]["count"] == 2
    assert metrics["B"]["count"] == 1
    assert metrics["A"]["min"] <= metrics["A"]["avg"] <= metrics["A"]["max"]
    assert [name for name, _ in sink.performance] == ["A", "A", "B"]


def test_performance_monitor_warns_above_threshold(caplog: pytest.LogCaptureFixture) -> None:
    monitor = PerformanceMonitorMiddleware(threshold_ms=-1)
    store = create_store(middleware=[monitor])

    with caplog.at_level("WARNING", logger="pystately.middleware"):
        store.dispatch({"type": "SLOW"})

    assert "SLOW" in caplog.text
