"""Tests for security module."""

import pytest

from cocbot.security import RateLimiter, sanitize_input


@pytest.fixture
def clock(monkeypatch):
    now = [1000.0]
    monkeypatch.setattr("cocbot.security.time.monotonic", lambda: now[0])
    return now


# --- RateLimiter tests ---

def test_rate_limit_allows_up_to_max(clock):
    limiter = RateLimiter(max_requests=3)
    results = [limiter.allow("+15550001111") for _ in range(4)]
    assert results == [True, True, True, False]


def test_rate_limit_is_per_sender(clock):
    limiter = RateLimiter(max_requests=3)
    for _ in range(3):
        limiter.allow("+15550001111")
    assert limiter.allow("+15550001111") is False
    assert limiter.allow("+15550002222") is True


def test_rate_limit_window_expires(clock):
    limiter = RateLimiter(max_requests=1, window=60)
    assert limiter.allow("+15550001111") is True
    assert limiter.allow("+15550001111") is False
    clock[0] += 61
    assert limiter.allow("+15550001111") is True


def test_rejected_requests_do_not_extend_the_window(clock):
    limiter = RateLimiter(max_requests=1, window=60)
    limiter.allow("+15550001111")
    clock[0] += 30
    assert limiter.allow("+15550001111") is False
    clock[0] += 31
    assert limiter.allow("+15550001111") is True


def test_idle_senders_are_forgotten(clock):
    limiter = RateLimiter(max_requests=5, window=60)
    limiter.allow("+15550001111")
    limiter.allow("+15550002222")
    assert limiter.tracked_senders == 2
    clock[0] += 61
    limiter.allow("+15550003333")
    assert limiter.tracked_senders == 1


# --- sanitize_input tests ---

def test_sanitize_input_strips_control_chars():
    """Control characters should be removed."""
    result = sanitize_input("hello\x00world\x01test")
    assert "\x00" not in result
    assert "\x01" not in result
    assert "hello" in result


def test_sanitize_input_keeps_newlines_and_tabs():
    assert sanitize_input("a\nb\tc\r") == "a\nb\tc\r"


@pytest.mark.parametrize("char", ["\u202e", "\u2066", "\u200b"])
def test_sanitize_input_strips_format_chars(char):
    assert sanitize_input(f"!coc find {char}luck") == "!coc find luck"


def test_sanitize_input_keeps_non_ascii_text():
    assert sanitize_input("!coc find 克苏鲁") == "!coc find 克苏鲁"


def test_sanitize_input_truncates():
    assert len(sanitize_input("x" * 20000)) == 10000
