import pytest
from core.credentials import CredentialPool
from core.errors import ConfigurationError


def test_back_to_back_rotation_moves_once(clock):
    pool = CredentialPool("hume", ["a", "b", "c"], cooldown_ms=1000, clock=clock)
    assert pool.rotate() is True
    assert pool.rotate() is False
    assert pool.cursor == 1
    assert pool.current() == "b"


def test_round_robin_returns_to_start(clock):
    pool = CredentialPool("hume", ["a", "b", "c"], cooldown_ms=1000, clock=clock)
    start = pool.cursor
    for _ in range(len(pool)):
        clock.advance(1000)
        assert pool.rotate()
    assert pool.cursor == start


def test_rotation_allowed_once_cooldown_elapsed(clock):
    pool = CredentialPool("hume", ["a", "b"], cooldown_ms=1000, clock=clock)
    pool.rotate()
    clock.advance(999)
    assert not pool.rotate()
    clock.advance(1)
    assert pool.rotate()
    assert pool.current() == "a"


def test_current_does_not_mutate(clock):
    pool = CredentialPool("hume", ["a", "b"], clock=clock)
    assert [pool.current() for _ in range(3)] == ["a", "a", "a"]


def test_advance_ignores_cooldown(clock):
    pool = CredentialPool("gemini", ["a", "b", "c"], cooldown_ms=10_000, clock=clock)
    assert pool.advance() == "a"
    assert pool.advance() == "b"
    assert pool.cursor == 2


def test_empty_pool_is_configuration_error():
    pool = CredentialPool("hume", ["", None])
    assert pool.is_empty
    with pytest.raises(ConfigurationError):
        pool.require()
    with pytest.raises(ConfigurationError):
        pool.current()
    assert pool.rotate() is False


def test_pools_are_isolated(clock):
    hume = CredentialPool("hume", ["h1", "h2"], clock=clock)
    gemini = CredentialPool("gemini", ["g1", "g2"], clock=clock)
    hume.rotate()
    assert hume.current() == "h2"
    assert gemini.current() == "g1"
    # gemini still rotates even though hume just did
    assert gemini.rotate()


def test_duplicate_keys_allowed(clock):
    pool = CredentialPool("hume", ["same", "same"], clock=clock)
    assert len(pool) == 2
    assert "key #1/2" in pool.describe()
