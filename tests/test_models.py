import pytest

from machload.models import MAX_HEADERS, Header, Options, Result


def test_option_defaults():
    opts = Options()
    assert opts.method == "GET"
    assert opts.requests == 100
    assert opts.concurrency == 10
    assert opts.timeout_s == 10.0
    assert opts.duration_s == 0
    assert opts.urls == []
    assert opts.headers == []


def test_add_header_splits_on_first_colon():
    opts = Options()
    assert opts.add_header("Content-Type:application/json") is True
    assert opts.headers == [Header("Content-Type", "application/json")]


def test_add_header_keeps_later_colons_in_value():
    opts = Options()
    opts.add_header("X-Time:12:30")
    assert opts.headers[0].key == "X-Time"
    assert opts.headers[0].value == "12:30"


def test_add_header_without_colon_is_rejected():
    opts = Options()
    assert opts.add_header("NoColonHere") is False
    assert opts.headers == []


def test_add_header_limit():
    opts = Options()
    for i in range(MAX_HEADERS):
        assert opts.add_header(f"K{i}:v")
    assert opts.add_header("Extra:v") is False
    assert len(opts.headers) == MAX_HEADERS


def test_add_header_truncates_long_parts():
    opts = Options()
    opts.add_header("k" * 300 + ":" + "v" * 900)
    assert len(opts.headers[0].key) == 127
    assert len(opts.headers[0].value) == 511


def test_options_instances_do_not_share_lists():
    a, b = Options(), Options()
    a.add_header("A:b")
    a.urls.append("http://localhost/")
    assert b.headers == []
    assert b.urls == []


@pytest.mark.parametrize(
    "code, expected",
    [(199, False), (200, True), (301, True), (399, True), (400, False), (0, False), (500, False)],
)
def test_result_ok(code, expected):
    assert Result("http://localhost/", status_code=code).ok() is expected