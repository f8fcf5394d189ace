"""Unit tests for listener composition."""

import pytest

from watchable import ChangeListener, ComposedListener, InvalidArgument, Watchable, and_then


@pytest.mark.unit
def test_and_then_invokes_first_then_second():
    """The composed listener calls both listeners in order with the same pair"""
    responses = []
    first = lambda old, new: responses.append(f"First: {old} -> {new}")
    second = lambda old, new: responses.append(f"Second: {old} -> {new}")

    combined = and_then(first, second)
    combined(5, 10)

    assert responses == ["First: 5 -> 10", "Second: 5 -> 10"]


@pytest.mark.unit
def test_and_then_matches_direct_invocation():
    """Invoking the composition equals invoking both listeners directly"""
    direct, composed = [], []

    def make(log, tag):
        return lambda old, new: log.append((tag, old, new))

    for pair in [(1, 2), (None, "x"), ([1], [1, 2])]:
        make(direct, "a")(*pair)
        make(direct, "b")(*pair)
        and_then(make(composed, "a"), make(composed, "b"))(*pair)

    assert composed == direct


@pytest.mark.unit
def test_and_then_rejects_missing_second_listener():
    """A missing second listener raises InvalidArgument"""
    with pytest.raises(InvalidArgument):
        and_then(lambda old, new: None, None)


@pytest.mark.unit
def test_and_then_rejects_missing_first_listener():
    with pytest.raises(InvalidArgument):
        and_then(None, lambda old, new: None)


@pytest.mark.unit
def test_invalid_argument_is_a_value_error():
    with pytest.raises(ValueError):
        and_then(lambda old, new: None, 42)


@pytest.mark.unit
def test_composition_is_associative():
    """(a then b) then c behaves like a then (b then c)"""
    left_log, right_log = [], []

    def tagged(log, tag):
        return lambda old, new: log.append(tag)

    left = and_then(and_then(tagged(left_log, "a"), tagged(left_log, "b")), tagged(left_log, "c"))
    right = and_then(tagged(right_log, "a"), and_then(tagged(right_log, "b"), tagged(right_log, "c")))

    left(0, 1)
    right(0, 1)

    assert left_log == right_log == ["a", "b", "c"]


@pytest.mark.unit
def test_composition_does_not_modify_inputs():
    """Composing returns a new value and leaves the inputs intact"""
    first = lambda old, new: None
    second = lambda old, new: None

    combined = and_then(first, second)

    assert isinstance(combined, ComposedListener)
    assert combined.first is first
    assert combined.second is second
    assert and_then(first, second) == combined


@pytest.mark.unit
def test_composed_listener_chains_fluently():
    log = []
    chained = and_then(lambda o, n: log.append(1), lambda o, n: log.append(2)).and_then(
        lambda o, n: log.append(3)
    )

    chained("old", "new")

    assert log == [1, 2, 3]


@pytest.mark.unit
def test_first_listener_failure_prevents_second():
    """An exception in the first listener propagates before the second runs"""
    log = []

    def fail(old, new):
        raise RuntimeError("first failed")

    combined = and_then(fail, lambda old, new: log.append("second"))

    with pytest.raises(RuntimeError):
        combined(1, 2)
    assert log == []


@pytest.mark.unit
def test_composed_listener_registers_on_cell():
    """A composition is registered and invoked like any other listener"""
    log = []
    cell = Watchable.of(1)
    cell.watch(and_then(lambda o, n: log.append(("a", o, n)), lambda o, n: log.append(("b", o, n))))

    cell.set(2)

    assert log == [("a", 1, 2), ("b", 1, 2)]
    assert cell.listener_count == 1


@pytest.mark.unit
def test_plain_functions_satisfy_change_listener_protocol():
    def listener(old, new):
        pass

    assert isinstance(listener, ChangeListener)
    assert isinstance(and_then(listener, listener), ChangeListener)
