"""Coloured terminal output: progress, summaries, comparisons and the dashboard."""

from __future__ import annotations

import sys
from collections.abc import Callable
from contextlib import nullcontext
from typing import TextIO

from machload.stats import Stats
from machload.storage import Storage
from machload.terminal import ESCAPE, Key, raw_mode
from machload.terminal import read_key as _terminal_read_key

RESET = "\x1b[0m"
BOLD = "\x1b[1m"
DIM = "\x1b[2m"
GREEN = "\x1b[32m"
RED = "\x1b[31m"
CYAN = "\x1b[36m"
YELLOW = "\x1b[33m"
BRIGHT_YELLOW = "\x1b[93m"
MAGENTA = "\x1b[35m"
BRIGHT_MAGENTA = "\x1b[95m"

CLEAR_SCREEN = "\x1b[H\x1b[J"

_BAR_WIDTH = 20
_SUMMARY_RULE = "─" * 34
_COMPARISON_RULE = "─" * 58
_DASHBOARD_LIMIT = 100


def _stream(out: TextIO | None) -> TextIO:
    return sys.stdout if out is None else out


def header(text: str, out: TextIO | None = None) -> None:
    """Write a bold magenta heading line."""
    _stream(out).write(f"{BOLD}{BRIGHT_MAGENTA}{text}{RESET}\n")


def info(text: str, out: TextIO | None = None) -> None:
    """Write ``text`` in cyan."""
    _stream(out).write(f"{CYAN}{text}{RESET}")


def success(text: str, out: TextIO | None = None) -> None:
    """Write ``text`` in green."""
    _stream(out).write(f"{GREEN}{text}{RESET}")


def error(text: str, out: TextIO | None = None) -> None:
    """Write ``text`` in red."""
    _stream(out).write(f"{RED}{text}{RESET}")


def progress_bar(current: int, total: int, elapsed_s: float, out: TextIO | None = None) -> None:
    """Redraw the progress line; a total of 0 shows elapsed time and rate instead."""
    stream = _stream(out)
    if total == 0:
        rate = current / elapsed_s if elapsed_s > 0 else 0.0
        stream.write(f"\r  ⏱️  {elapsed_s:.1f}s | {current} req | {rate:.1f}/s ")
        stream.flush()
        return
    filled = min(int(current / total * _BAR_WIDTH), _BAR_WIDTH)
    bar = "█" * filled + "░" * (_BAR_WIDTH - filled)
    stream.write(f"\r  {CYAN}[{bar}]{RESET} {current}/{total} ({current / total * 100:.0f}%) ")
    stream.flush()


def format_summary(stats: Stats) -> str:
    """The end-of-run summary as text."""
    failed_color = RED if stats.failed > 0 else DIM
    parts = [
        f"\n\n{BOLD}{BRIGHT_MAGENTA}🚀 SUMMARY{RESET}\n",
        f"{DIM}{_SUMMARY_RULE}{RESET}\n",
        f"  {'Requests':<15} {stats.total_requests}\n",
        f"  {'Successful':<15} {GREEN}{stats.success}{RESET}\n",
        f"  {'Failed':<15} {failed_color}{stats.failed}{RESET}\n",
    ]
    if stats.total_requests > 0:
        parts.append(f"  {'Success Rate':<15} {stats.success_rate():.2f}%\n")
    parts.append(f"  {'Duration':<15} {stats.total_duration_s:.2f}s\n")
    parts.append(f"  {'Requests/sec':<15} {stats.rps:.2f}/s\n")

    if stats.success > 0:
        parts.append(f"\n{BOLD}{BRIGHT_MAGENTA}📊 LATENCY{RESET}\n")
        parts.append(
            f"  Avg: {stats.avg_latency:.2f}ms | P50: {stats.p50_latency:.2f}ms"
            f" | P95: {stats.p95_latency:.2f}ms\n"
        )

    codes = sorted(
        code for code, count in stats.status_codes.items() if 100 <= code < 600 and count > 0
    )
    if codes:
        parts.append(f"\n{BOLD}{BRIGHT_MAGENTA}📡 STATUS{RESET}\n")
        parts.extend(f"  {code}: {stats.status_codes[code]}  " for code in codes)
    parts.append("\n\n")
    return "".join(parts)


def display_summary(stats: Stats, out: TextIO | None = None) -> None:
    """Write the end-of-run summary."""
    _stream(out).write(format_summary(stats))


def dashboard(
    storage: Storage,
    read_key: Callable[[], int] | None = None,
    out: TextIO | None = None,
) -> None:
    """Browse stored runs with the arrow keys; Enter shows one, q or Esc quits."""
    stream = _stream(out)
    files = storage.list_history(_DASHBOARD_LIMIT)
    if not files:
        error("No history found.\n", stream)
        return

    terminal = raw_mode() if read_key is None else nullcontext()
    read = _terminal_read_key if read_key is None else read_key
    cursor = 0
    with terminal:
        while True:
            stream.write(CLEAR_SCREEN)
            header("⚡ MACH HISTORY DASHBOARD", stream)
            stream.write("Use ↑/↓ to navigate, ENTER to view, 'q' to exit\n\n")
            for index, name in enumerate(files):
                if index == cursor:
                    stream.write(f"{CYAN}  ➔ {name}{RESET}\n")
                else:
                    stream.write(f"    {name}\n")
            stream.flush()

            key = read()
            if key in (ord("q"), ESCAPE):
                break
            if key == Key.UP and cursor > 0:
                cursor -= 1
            if key == Key.DOWN and cursor < len(files) - 1:
                cursor += 1
            if key in (ord("\n"), ord("\r")):
                content = storage.read_history(files[cursor])
                if content is not None:
                    stream.write(CLEAR_SCREEN)
                    header("Run Details", stream)
                    stream.write(f"{content}\n\n")
                    stream.write("Press any key to return...")
                    stream.flush()
                    read()


def examples(out: TextIO | None = None) -> None:
    """Write a list of example command lines."""
    stream = _stream(out)
    header("⚡ MACH USAGE EXAMPLES", stream)
    stream.write(
        "\n  1. Quick Test:\n"
        "     ./mach http://localhost:8080\n"
        "\n  2. Custom Load:\n"
        "     ./mach -n 1000 -c 50 http://example.com\n"
        "\n  3. Soak Test (Duration based):\n"
        "     ./mach -d 5m -c 20 http://api.example.com\n"
        "\n  4. Stress Test (Profile):\n"
        "     ./mach --profile stress http://example.com\n"
        "\n  5. POST with JSON body:\n"
        "     ./mach -m POST -h \"Content-Type:application/json\" -b "
        "'{\"id\":1}' http://api.com\n"
    )


def comparison_row(label: str, before: float, after: float, lower_is_better: bool) -> str:
    """One line of the before/after table, with a coloured change marker."""
    diff = after - before
    pct = diff / before * 100.0 if before != 0 else 0.0
    improved = after < before if lower_is_better else after > before
    row = f"  {label:<15} {before:<12.2f} {after:<12.2f} "
    if diff == 0:
        return f"{row}{RESET}━ 0.0%{RESET}\n"
    color = GREEN if improved else RED
    icon = "▲" if after > before else "▼"
    return f"{row}{color}{icon} {pct:+.1f}%{RESET}\n"


def display_comparison(storage: Storage, tag: str, out: TextIO | None = None) -> bool:
    """Write the before/after table for ``tag``; False when a snapshot is missing."""
    stream = _stream(out)
    before = storage.load_tagged(tag, "before")
    after = storage.load_tagged(tag, "after")
    if before is None:
        error("Error: Baseline ('before') not found for tag: ", stream)
        stream.write(f"{tag}\n")
        return False
    if after is None:
        error("Error: Target ('after') not found for tag: ", stream)
        stream.write(f"{tag}\n")
        return False

    rule = f"{DIM}{_COMPARISON_RULE}{RESET}\n"
    stream.write(f"\n{BOLD}{BRIGHT_MAGENTA}⚖️  COMPARISON: {tag}{RESET}\n")
    stream.write(rule)
    stream.write(f"  {'Metric':<15} {'Before':<12} {'After':<12} {'Delta':<10}\n")
    stream.write(rule)
    rows = [
        ("Avg Latency", before.avg_latency, after.avg_latency, True),
        ("P50 Latency", before.p50_latency, after.p50_latency, True),
        ("P95 Latency", before.p95_latency, after.p95_latency, True),
        ("P99 Latency", before.p99_latency, after.p99_latency, True),
        ("RPS", before.rps, after.rps, False),
        ("Success Rate", before.success_rate(), after.success_rate(), False),
    ]
    for label, old, new, lower_is_better in rows:
        stream.write(comparison_row(label, old, new, lower_is_better))
    stream.write(rule)
    stream.write("\n")
    return True