import time

import pytest
from core.retry import RetryingInvoker


class Op:
    def __init__(self, results):
        self.results = list(results)
        self.calls = 0
    def __call__(self):
        self.calls += 1
        r = self.results.pop(0)
        if isinstance(r, Exception):
            raise r
        return r


@pytest.fixture
def slept(monkeypatch):
    waits = []
    monkeypatch.setattr(time, "sleep", waits.append)
    return waits


def test_no_result_exhausts_with_exponential_backoff(slept):
    seen = []
    inv = RetryingInvoker(base_delay=0.5, on_backoff=lambda d: seen.append(d["wait"]))
    op = Op([None, None, None])
    assert inv.invoke(op, max_attempts=3) is None
    assert op.calls == 3
    assert slept == [0.5, 1.0]
    assert seen == slept
    assert sum(slept) >= 1.5


def test_longer_schedule_keeps_doubling(slept):
    inv = RetryingInvoker(base_delay=0.5, max_attempts=4)
    assert inv.invoke(Op([None] * 4)) is None
    assert slept == [0.5, 1.0, 2.0]


def test_first_success_short_circuits(slept):
    inv = RetryingInvoker()
    op = Op([None, ["joy"]])
    assert inv.invoke(op) == ["joy"]
    assert op.calls == 2 and slept == [0.5]


def test_empty_list_is_a_result(slept):
    op = Op([[], ["never"]])
    assert RetryingInvoker().invoke(op) == []
    assert op.calls == 1 and slept == []


def test_error_is_not_retried(slept):
    inv = RetryingInvoker()
    op = Op([RuntimeError("boom"), ["never"]])
    with pytest.raises(RuntimeError):
        inv.invoke(op)
    assert op.calls == 1 and slept == []


def test_error_after_no_result_propagates(slept):
    inv = RetryingInvoker()
    op = Op([None, ValueError("bad")])
    with pytest.raises(ValueError):
        inv.invoke(op, max_attempts=3)
    assert op.calls == 2
