"""Tests for the observable value cell."""

import pytest

from fetchkit.core.signal import Signal


@pytest.mark.unit
def test_subscribe_receives_current_then_updates():
    """Test observers get the current value immediately, then every set."""
    signal = Signal(0)
    seen: list[int] = []

    signal.subscribe(seen.append)
    signal.set(1)
    signal.set(2)

    assert seen == [0, 1, 2]
    assert signal.get() == signal.value == 2


@pytest.mark.unit
def test_unsubscribe_stops_delivery():
    """Test the returned callable unregisters the observer."""
    signal = Signal("a")
    seen: list[str] = []

    unsubscribe = signal.subscribe(seen.append)
    unsubscribe()
    signal.set("b")

    assert seen == ["a"]
    assert signal.observer_count == 0


@pytest.mark.unit
def test_subscribe_once_deduplicates():
    """Test subscribe_once registers an observer at most once."""
    signal = Signal(0)
    seen: list[int] = []

    signal.subscribe_once(seen.append)
    signal.subscribe_once(seen.append)
    signal.set(1)

    assert signal.observer_count == 1
    assert seen == [0, 1]


@pytest.mark.unit
def test_failing_observer_does_not_block_others():
    """Test observer exceptions are contained."""
    signal = Signal(0)
    seen: list[int] = []

    def broken(value: int) -> None:
        if value:
            raise RuntimeError("observer failed")

    signal.subscribe(broken)
    signal.subscribe(seen.append)
    signal.set(1)

    assert seen == [0, 1]


@pytest.mark.unit
def test_failing_observer_contained_on_subscribe():
    """Test the immediate delivery on subscribe is contained like set."""
    signal = Signal(0)
    calls: list[int] = []

    def broken(value: int) -> None:
        calls.append(value)
        raise RuntimeError("observer failed")

    unsubscribe = signal.subscribe(broken)
    signal.set(1)

    assert calls == [0, 1]
    assert signal.observer_count == 1
    unsubscribe()
    assert signal.observer_count == 0


@pytest.mark.unit
def test_observer_may_unsubscribe_during_notify():
    """Test delivery iterates a snapshot of observers."""
    signal = Signal(0)
    seen: list[int] = []
    handles = {}

    def once(value: int) -> None:
        seen.append(value)
        if value:
            handles["once"]()

    handles["once"] = signal.subscribe(once)
    signal.set(1)
    signal.set(2)

    assert seen == [0, 1]
