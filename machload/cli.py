"""Command-line entry point for the ``mach`` load tester."""

from __future__ import annotations

import getopt
import re
import sys

from machload import ui
from machload.attacker import RegressionError, run
from machload.models import VERSION, Options
from machload.storage import Storage

_SHORT_OPTS = "n:d:c:r:p:m:h:b:t:kv?"
_LONG_OPTS = [
    "requests=",
    "duration=",
    "concurrency=",
    "rps=",
    "profile=",
    "method=",
    "header=",
    "body=",
    "body-file=",
    "urls-file=",
    "ramp-up=",
    "timeout=",
    "insecure",
    "tag=",
    "before",
    "after",
    "result",
    "threshold=",
    "version",
    "help",
]
_LONG_TO_SHORT = {
    "--requests": "-n",
    "--duration": "-d",
    "--concurrency": "-c",
    "--rps": "-r",
    "--profile": "-p",
    "--method": "-m",
    "--header": "-h",
    "--body": "-b",
    "--timeout": "-t",
    "--insecure": "-k",
    "--version": "-v",
    "--help": "-?",
}

_INT_RE = re.compile(r"\s*([+-]?\d+)")
_FLOAT_RE = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")

_USAGE = """\
⚡ Mach

Usage: mach [command] [options] <url>

Commands:
  attack      Full-featured load test
  dashboard   View historical test runs
  history     history clear, history list
  examples    Show comprehensive usage examples
  version     Show version information

Options:
  -n INT      Total requests (default 100)
  -d STR      Run duration (e.g., 30s, 1m, 5m)
  -c INT      Concurrent workers (default 10)
  -r INT      Requests per second limit
  -p STR      Test profile (smoke, stress, soak)
  -m STR      HTTP method (default GET)
  --tag STR   Tag name for comparison
  --before    Set as baseline for tag
  --after     Set as target for tag comparison
  --result    Show comparison result for tag
  --threshold FLOAT Max allowed regression % (default 0)
"""


def _to_int(text: str) -> int:
    match = _INT_RE.match(text)
    return int(match.group(1)) if match else 0


def _to_float(text: str) -> float:
    match = _FLOAT_RE.match(text)
    return float(match.group(1)) if match else 0.0


def usage_text() -> str:
    """The help text shown for ``--help`` and on bad invocations."""
    return _USAGE


def parse_duration(text: str) -> int:
    """Seconds in a duration such as ``30s``, ``1m`` or ``2h``; a bare number is seconds."""
    value = _to_int(text)
    if "s" in text:
        return value
    if "m" in text:
        return value * 60
    if "h" in text:
        return value * 3600
    return value


def apply_profile(opts: Options, profile: str) -> None:
    """Apply a named preset (smoke, stress or soak); unknown names change nothing."""
    if profile == "smoke":
        opts.requests = 10
        opts.concurrency = 2
    elif profile == "stress":
        opts.requests = 10000
        opts.concurrency = 100
    elif profile == "soak":
        opts.duration_s = 300
        opts.concurrency = 50
        opts.requests = 0


def parse_args(argv: list[str]) -> tuple[str, Options]:
    """Parse attack arguments (without the program name).

    Returns an action and the options. The action is ``"attack"``,
    ``"result"`` (show a tag comparison), ``"version"``, ``"help"``, or
    ``"usage"`` when no target URL was given.
    """
    args = list(argv)
    start = 1 if args and args[0] == "attack" else 0
    opts = Options()
    try:
        parsed, positional = getopt.gnu_getopt(args[start:], _SHORT_OPTS, _LONG_OPTS)
    except getopt.GetoptError as exc:
        sys.stderr.write(f"mach: {exc}\n")
        return "help", opts

    for name, value in parsed:
        match _LONG_TO_SHORT.get(name, name):
            case "-n":
                opts.requests = _to_int(value)
            case "-d":
                opts.duration_s = parse_duration(value)
            case "-c":
                opts.concurrency = _to_int(value)
            case "-r":
                opts.rps = _to_int(value)
            case "-p":
                apply_profile(opts, value)
            case "--ramp-up":
                opts.ramp_up_s = float(parse_duration(value))
            case "-m":
                opts.method = value
            case "-h":
                opts.add_header(value)
            case "-b":
                opts.body = value
            case "--body-file":
                opts.body_file = value
            case "--urls-file":
                opts.urls_file = value
            case "-t":
                opts.timeout_s = float(_to_int(value))
            case "-k":
                opts.insecure = True
            case "--tag":
                opts.tag = value
            case "--before":
                opts.before = True
            case "--after":
                opts.after = True
            case "--result":
                opts.show_result = True
            case "--threshold":
                opts.threshold = _to_float(value)
            case "-v":
                return "version", opts
            case "-?":
                return "help", opts

    if opts.show_result:
        return "result", opts

    if positional:
        opts.urls.append(positional[0])
    elif not opts.urls_file:
        if len(args) > start and not args[-1].startswith("-"):
            opts.urls.append(args[-1])
        else:
            return "usage", opts
    return "attack", opts


def main(argv: list[str] | None = None) -> int:
    """Run the command line and return the process exit status."""
    argv = sys.argv[1:] if argv is None else list(argv)
    out = sys.stdout
    if not argv:
        out.write(usage_text())
        return 1

    storage = Storage()
    try:
        storage.ensure_dirs()
    except OSError:
        pass

    command = argv[0]
    if command in ("dashboard", "dash"):
        ui.dashboard(storage)
        return 0
    if command == "history" and len(argv) > 1 and argv[1] == "clear":
        storage.clear_history()
        ui.success("History cleared.\n")
        return 0
    if command == "examples":
        ui.examples()
        return 0
    if command == "version":
        out.write(f"Mach v{VERSION}\n")
        return 0

    action, opts = parse_args(argv)
    if action == "version":
        out.write(f"Mach v{VERSION}\n")
        return 0
    if action == "help":
        out.write(usage_text())
        return 0
    if action == "usage":
        out.write(usage_text())
        return 1
    if action == "result":
        if not opts.tag:
            ui.error("Error: --result requires --tag <name>\n")
            return 1
        ui.display_comparison(storage, opts.tag)
        return 0

    try:
        run(opts, storage)
    except RegressionError as exc:
        out.write(f"\n{ui.RED}{exc}{ui.RESET}\n")
        return 1
    except ValueError as exc:
        ui.error(f"Error: {exc}\n")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())