import threading

import pytest

from gotenberg.cancellation import CancelScope, Cancelled, DeadlineExceeded


def test_new_scope_is_active():
    scope = CancelScope()
    assert scope.done() is False
    assert scope.error() is None
    assert scope.remaining() is None


def test_cancel_marks_scope_cancelled():
    scope = CancelScope()
    scope.cancel()
    assert scope.done() is True
    assert isinstance(scope.error(), Cancelled)


def test_cancel_twice_keeps_same_error():
    scope = CancelScope()
    scope.cancel()
    first = scope.error()
    scope.cancel()
    assert scope.error() is first


def test_expired_timeout_reports_deadline_exceeded():
    scope = CancelScope(timeout=0)
    assert scope.done() is True
    assert isinstance(scope.error(), DeadlineExceeded)
    assert scope.remaining() == 0.0


def test_negative_timeout_is_done_immediately():
    scope = CancelScope(timeout=-1)
    assert scope.done() is True
    assert scope.remaining() == 0.0
    assert isinstance(scope.error(), DeadlineExceeded)


def test_cancel_after_deadline_keeps_deadline_error():
    scope = CancelScope(timeout=0)
    first = scope.error()
    scope.cancel()
    assert scope.done() is True
    assert scope.error() is first
    assert isinstance(scope.error(), DeadlineExceeded)


def test_remaining_is_bounded_by_timeout():
    scope = CancelScope(timeout=60)
    remaining = scope.remaining()
    assert 0 < remaining <= 60


def test_wait_times_out_on_active_scope():
    scope = CancelScope()
    assert scope.wait(0.01) is False
    assert scope.error() is None


def test_wait_returns_when_deadline_passes():
    scope = CancelScope(timeout=0.05)
    assert scope.wait(5) is True
    assert isinstance(scope.error(), DeadlineExceeded)


def test_wait_returns_when_cancelled_from_other_thread():
    scope = CancelScope()
    timer = threading.Timer(0.02, scope.cancel)
    timer.start()
    try:
        assert scope.wait(5) is True
    finally:
        timer.cancel()
    assert isinstance(scope.error(), Cancelled)


def test_deadline_exceeded_is_a_timeout_error():
    scope = CancelScope(timeout=0)
    assert scope.wait(0) is True
    err = scope.error()
    with pytest.raises(TimeoutError) as info:
        raise err
    assert info.value is err