import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from machload.cli import apply_profile, main, parse_args, parse_duration, usage_text
from machload.models import Header, Options
from machload.stats import Stats
from machload.storage import Storage


class _OkHandler(BaseHTTPRequestHandler):
    protocol_version = "HTTP/1.1"

    def do_GET(self):
        self.wfile.write(b"HTTP/1.1 200 OK\r\nContent-Length: 2\r\n\r\nok")

    def log_message(self, *args):
        pass


@pytest.fixture
def server_url():
    server = ThreadingHTTPServer(("127.0.0.1", 0), _OkHandler)
    server.daemon_threads = True
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_address[1]}/"
    finally:
        server.shutdown()
        server.server_close()


@pytest.fixture
def home(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    return tmp_path


@pytest.mark.parametrize(
    "text, expected",
    [("30s", 30), ("1m", 60), ("5m", 300), ("45", 45), ("abc", 0)],
)
def test_parse_duration(text, expected):
    assert parse_duration(text) == expected


def test_parse_duration_hours_larger_than_minutes():
    assert parse_duration("2h") == parse_duration("120m")


def test_apply_profile_smoke():
    opts = Options()
    apply_profile(opts, "smoke")
    assert (opts.requests, opts.concurrency) == (10, 2)


def test_apply_profile_stress():
    opts = Options()
    apply_profile(opts, "stress")
    assert (opts.requests, opts.concurrency) == (10000, 100)


def test_apply_profile_soak():
    opts = Options()
    apply_profile(opts, "soak")
    assert (opts.duration_s, opts.concurrency, opts.requests) == (300, 50, 0)


def test_apply_profile_unknown_changes_nothing():
    opts = Options()
    apply_profile(opts, "nonsense")
    assert opts == Options()


def test_usage_text_mentions_commands():
    text = usage_text()
    assert "Usage: mach [command] [options] <url>" in text
    assert "--threshold FLOAT" in text


def test_parse_args_basic_options():
    action, opts = parse_args(["-n", "50", "-c", "5", "-r", "7", "http://host/"])
    assert action == "attack"
    assert (opts.requests, opts.concurrency, opts.rps) == (50, 5, 7)
    assert opts.urls == ["http://host/"]


def test_parse_args_attack_prefix_and_permutation():
    action, opts = parse_args(["attack", "http://host/x", "-m", "POST", "-b", "data"])
    assert action == "attack"
    assert opts.urls == ["http://host/x"]
    assert opts.method == "POST"
    assert opts.body == "data"


def test_parse_args_long_options():
    action, opts = parse_args(
        ["--requests=20", "--timeout", "5", "--ramp-up", "3s", "--insecure", "http://h/"]
    )
    assert action == "attack"
    assert opts.requests == 20
    assert opts.timeout_s == 5.0
    assert opts.ramp_up_s == 3.0
    assert opts.insecure is True


def test_parse_args_header():
    _, opts = parse_args(["-h", "Content-Type:application/json", "http://h/"])
    assert opts.headers == [Header("Content-Type", "application/json")]


def test_parse_args_header_without_colon_ignored():
    _, opts = parse_args(["-h", "nocolon", "http://h/"])
    assert opts.headers == []


def test_parse_args_duration_and_profile():
    _, opts = parse_args(["-p", "soak", "-d", "30s", "http://h/"])
    assert opts.duration_s == 30
    assert opts.concurrency == 50


def test_parse_args_tag_flags():
    _, opts = parse_args(["--tag", "v2", "--after", "--threshold", "2.5", "http://h/"])
    assert opts.tag == "v2"
    assert opts.after is True
    assert opts.before is False
    assert opts.threshold == 2.5


def test_parse_args_version_and_help():
    assert parse_args(["-v", "http://h/"])[0] == "version"
    assert parse_args(["--help"])[0] == "help"


def test_parse_args_invalid_option_gives_help():
    assert parse_args(["-x", "http://h/"])[0] == "help"


def test_parse_args_missing_url():
    assert parse_args(["attack"])[0] == "usage"
    assert parse_args(["-k"])[0] == "usage"


def test_parse_args_urls_file_needs_no_url():
    action, opts = parse_args(["--urls-file", "list.txt"])
    assert action == "attack"
    assert opts.urls == []
    assert opts.urls_file == "list.txt"


def test_parse_args_result_skips_url():
    action, opts = parse_args(["--result", "--tag", "t1"])
    assert action == "result"
    assert opts.tag == "t1"


def test_main_without_arguments(home, capsys):
    assert main([]) == 1
    assert "Usage: mach" in capsys.readouterr().out


def test_main_version(home, capsys):
    assert main(["version"]) == 0
    assert "Mach v1.1.1" in capsys.readouterr().out


def test_main_version_flag(home, capsys):
    assert main(["-v"]) == 0
    assert "Mach v1.1.1" in capsys.readouterr().out


def test_main_examples(home, capsys):
    assert main(["examples"]) == 0
    assert "MACH USAGE EXAMPLES" in capsys.readouterr().out


def test_main_creates_storage_dirs(home):
    assert main(["version"]) == 0
    assert (home / ".mach" / "history").is_dir()
    assert (home / ".mach" / "tags").is_dir()


def test_main_history_clear(home, capsys):
    history = home / ".mach" / "history"
    history.mkdir(parents=True)
    (history / "a.json").write_text("{}")
    (history / "keep.txt").write_text("x")
    assert main(["history", "clear"]) == 0
    assert sorted(p.name for p in history.iterdir()) == ["keep.txt"]
    assert "History cleared." in capsys.readouterr().out


def test_main_dashboard_without_history(home, capsys):
    assert main(["dashboard"]) == 0
    assert "No history found." in capsys.readouterr().out


def test_main_result_requires_tag(home, capsys):
    assert main(["--result"]) == 1
    assert "--result requires --tag" in capsys.readouterr().out


def test_main_result_missing_baseline(home, capsys):
    assert main(["--result", "--tag", "t1"]) == 0
    assert "Baseline ('before') not found" in capsys.readouterr().out


def test_main_result_shows_comparison(home, capsys):
    storage = Storage(home)
    storage.save_tagged("t1", "before", Stats(total_requests=2, success=2, avg_latency=1.0))
    storage.save_tagged("t1", "after", Stats(total_requests=2, success=2, avg_latency=1.0))
    assert main(["--result", "--tag", "t1"]) == 0
    out = capsys.readouterr().out
    assert "COMPARISON: t1" in out
    assert "Avg Latency" in out


def test_main_missing_url_prints_usage(home, capsys):
    assert main(["attack"]) == 1
    assert "Usage: mach" in capsys.readouterr().out


def test_main_runs_attack(home, server_url, capsys):
    assert main(["-n", "4", "-c", "2", server_url]) == 0
    out = capsys.readouterr().out
    assert "SUMMARY" in out
    records = list((home / ".mach" / "history").glob("*.json"))
    assert len(records) == 1
    assert '"total_requests": 4' in records[0].read_text()


def test_main_tags_baseline(home, server_url, capsys):
    assert main(["-n", "2", "-c", "1", "--tag", "base", "--before", server_url]) == 0
    assert "[TAGGED as before]" in capsys.readouterr().out
    loaded = Storage(home).load_tagged("base", "before")
    assert loaded.total_requests == 2


def test_main_detects_regression(home, server_url, capsys):
    Storage(home).save_tagged(
        "slow", "before", Stats(total_requests=1, success=1, avg_latency=0.0001)
    )
    code = main(
        ["-n", "2", "-c", "1", "--tag", "slow", "--after", "--threshold", "1", server_url]
    )
    assert code == 1
    assert "REGRESSION DETECTED" in capsys.readouterr().out


def test_main_zero_concurrency_is_error(home, capsys):
    assert main(["-c", "0", "http://127.0.0.1:9/"]) == 1
    assert "concurrency" in capsys.readouterr().out