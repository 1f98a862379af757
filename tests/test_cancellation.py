"""Tests for cancellation tokens and the event emitter."""

from kernelpaths import CancellationToken, EventEmitter


class TestCancellationToken:
    """Tests for CancellationToken."""

    def test_starts_uncancelled(self) -> None:
        token = CancellationToken.none()
        assert token.is_cancelled is False
        assert token.reason is None

    def test_cancel_notifies_callbacks_once(self) -> None:
        seen: list[str | None] = []
        token = CancellationToken()
        token.on_cancel(lambda t: seen.append(t.reason))
        token.cancel("stop")
        token.cancel("again")
        assert token.is_cancelled
        assert seen == ["stop"]

    def test_callback_on_cancelled_token_runs_immediately(self) -> None:
        token = CancellationToken()
        token.cancel()
        seen: list[bool] = []
        token.on_cancel(lambda t: seen.append(t.is_cancelled))
        assert seen == [True]

    def test_unsubscribe(self) -> None:
        seen: list[int] = []
        token = CancellationToken()
        unsubscribe = token.on_cancel(lambda t: seen.append(1))
        unsubscribe()
        token.cancel()
        assert seen == []

    def test_failing_callback_does_not_block_others(self) -> None:
        seen: list[int] = []

        def broken(_: CancellationToken) -> None:
            raise RuntimeError("listener bug")

        token = CancellationToken()
        token.on_cancel(broken)
        token.on_cancel(lambda t: seen.append(2))
        token.cancel()
        assert seen == [2]


class TestEventEmitter:
    """Tests for EventEmitter."""

    def test_fire_calls_listeners(self) -> None:
        calls: list[str] = []
        emitter = EventEmitter()
        emitter.subscribe(lambda: calls.append("a"))
        emitter.subscribe(lambda: calls.append("b"))
        emitter.fire()
        assert calls == ["a", "b"]

    def test_unsubscribe(self) -> None:
        calls: list[int] = []
        emitter = EventEmitter()
        unsubscribe = emitter.subscribe(lambda: calls.append(1))
        unsubscribe()
        emitter.fire()
        assert calls == []
        assert len(emitter) == 0

    def test_listener_error_is_contained(self) -> None:
        calls: list[int] = []

        def broken() -> None:
            raise ValueError("bad")

        emitter = EventEmitter()
        emitter.subscribe(broken)
        emitter.subscribe(lambda: calls.append(1))
        emitter.fire()
        assert calls == [1]
