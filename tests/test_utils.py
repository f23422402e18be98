# File: tests/test_utils.py
import pytest

from page_scout.utils import MonotonicClock, is_injectable_url, key_timestamp, origin_key, UNKNOWN_ORIGIN


@pytest.mark.parametrize(
    "url,expected",
    [
        ("https://example.com/", True),
        ("HTTP://EXAMPLE.COM/path?q=1", True),
        ("chrome://extensions", False),
        ("edge://settings", False),
        ("about:blank", False),
        ("chrome-extension://abc/popup.html", False),
        ("file:///home/user/index.html", False),
        ("ftp://files.example.com/", False),
        ("https://", False),
        ("", False),
        (None, False),
    ],
)
def test_is_injectable_url(url, expected):
    assert is_injectable_url(url) is expected


def test_custom_scheme_allow_list():
    assert is_injectable_url("ftp://files.example.com/", ["ftp"])
    assert not is_injectable_url("https://example.com/", ["ftp"])


def test_origin_key():
    assert origin_key(None, "https://b/") == "https://b/"
    assert origin_key("https://a/", "https://b/") == "https://a/"
    assert origin_key(None, "") == UNKNOWN_ORIGIN


def test_key_timestamp():
    assert key_timestamp("run:123", "run:") == 123
    assert key_timestamp("run:last", "run:") is None
    assert key_timestamp("archive:5", "run:") is None


def test_clock_never_repeats():
    clock = MonotonicClock(source=lambda: 1.0)
    assert [clock(), clock(), clock()] == [1000, 1001, 1002]


def test_clock_follows_source():
    ticks = iter([5.0, 4.0, 9.0])
    clock = MonotonicClock(source=lambda: next(ticks))
    assert [clock(), clock(), clock()] == [5000, 5001, 9000]
