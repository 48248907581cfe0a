"""Run a load test: spread requests over worker threads and report the results."""

from __future__ import annotations

import itertools
import math
import sys
import threading
import time
from typing import TextIO

from machload import ui
from machload.client import Connection, connect
from machload.models import MAX_URLS, Options, Result
from machload.stats import Stats, calculate_stats
from machload.storage import Storage, load_urls, read_file

_DURATION_RESULT_CAP = 1_000_000
_PROGRESS_INTERVAL_S = 0.1


class RegressionError(Exception):
    """Average latency grew by more than the allowed threshold."""

    def __init__(self, percent: float, threshold: float) -> None:
        self.percent = percent
        self.threshold = threshold
        super().__init__(
            f"❌ REGRESSION DETECTED: {percent:.1f}% (Threshold: {threshold:.1f}%)"
        )


def requests_for_worker(opts: Options, worker_id: int) -> int | None:
    """How many requests worker ``worker_id`` sends; None in duration mode."""
    if opts.duration_s != 0:
        return None
    share, extra = divmod(opts.requests, opts.concurrency)
    return share + (1 if worker_id < extra else 0)


def ramp_delay(opts: Options, worker_id: int) -> float:
    """Seconds worker ``worker_id`` waits before starting, spread over the ramp-up."""
    if opts.ramp_up_s <= 0:
        return 0.0
    return worker_id * opts.ramp_up_s / opts.concurrency


def regression_percent(before: Stats, after: Stats) -> float:
    """Change in average latency from ``before`` to ``after``, in percent."""
    diff = after.avg_latency - before.avg_latency
    if before.avg_latency == 0:
        if diff == 0:
            return math.nan
        return math.copysign(math.inf, diff)
    return diff / before.avg_latency * 100.0


def check_regression(before: Stats, after: Stats, threshold: float) -> float:
    """Return the latency change; raise RegressionError if it exceeds a positive threshold."""
    percent = regression_percent(before, after)
    if threshold > 0 and percent > threshold:
        raise RegressionError(percent, threshold)
    return percent


def _worker(
    opts: Options,
    worker_id: int,
    results: list[Result],
    max_results: int,
    lock: threading.Lock,
    stop: threading.Event,
) -> None:
    delay = ramp_delay(opts, worker_id)
    if delay > 0:
        stop.wait(delay)

    todo = requests_for_worker(opts, worker_id)
    indices = itertools.count() if todo is None else range(todo)
    start = time.monotonic()
    conn: Connection | None = None
    try:
        for i in indices:
            if stop.is_set():
                break
            if opts.duration_s > 0 and time.monotonic() - start >= opts.duration_s:
                break
            url = opts.urls[i % len(opts.urls)]
            if conn is None:
                try:
                    conn = connect(url, opts.insecure, opts.timeout_s)
                except (OSError, ValueError):
                    continue
            result = conn.send(url, opts.method, opts.headers, opts.body)
            with lock:
                if len(results) < max_results:
                    results.append(result)
            if opts.rps > 0:
                time.sleep(1.0 / opts.rps)
    finally:
        if conn is not None:
            conn.close()


def run(opts: Options, storage: Storage | None = None, out: TextIO | None = None) -> Stats | None:
    """Run the load test described by ``opts`` and return its statistics.

    Returns None when the URLs file yields no URLs. Raises ValueError when
    there is nothing to target or no workers, and RegressionError when an
    ``after`` run is slower than the tagged baseline by more than
    ``opts.threshold`` percent.
    """
    stream = sys.stdout if out is None else out
    storage = Storage() if storage is None else storage

    if opts.urls_file:
        opts.urls = load_urls(opts.urls_file, MAX_URLS)
        if not opts.urls:
            ui.error("Error: URLs file is empty or missing.\n", stream)
            return None
    if opts.body_file:
        opts.body = read_file(opts.body_file)
    if not opts.urls:
        raise ValueError("no target URL given")
    if opts.concurrency < 1:
        raise ValueError("concurrency must be at least 1")

    max_results = opts.requests if opts.requests > 0 else _DURATION_RESULT_CAP
    results: list[Result] = []
    lock = threading.Lock()
    stop = threading.Event()

    start = time.monotonic()
    workers = [
        threading.Thread(
            target=_worker,
            args=(opts, worker_id, results, max_results, lock, stop),
            daemon=True,
        )
        for worker_id in range(opts.concurrency)
    ]
    for worker in workers:
        worker.start()

    expected = 0 if opts.duration_s > 0 else opts.requests
    while not stop.is_set():
        if expected > 0 and len(results) >= expected:
            break
        if not any(worker.is_alive() for worker in workers):
            break
        elapsed = time.monotonic() - start
        if opts.duration_s > 0:
            if elapsed >= opts.duration_s:
                stop.set()
                break
            ui.progress_bar(len(results), 0, elapsed, stream)
        else:
            ui.progress_bar(len(results), expected, elapsed, stream)
        time.sleep(_PROGRESS_INTERVAL_S)
    stream.write("\n")

    for worker in workers:
        worker.join()
    total_duration = time.monotonic() - start

    stats = calculate_stats(results, total_duration)
    ui.display_summary(stats, stream)
    storage.save_run(
        opts.urls[0], stats.total_requests, stats.success, stats.failed, stats.avg_latency, stats.rps
    )

    if opts.tag:
        if opts.before:
            storage.save_tagged(opts.tag, "before", stats)
            ui.success("   [TAGGED as before]\n", stream)
        elif opts.after:
            storage.save_tagged(opts.tag, "after", stats)
            ui.success("   [TAGGED as after]\n", stream)
            if opts.threshold > 0:
                baseline = storage.load_tagged(opts.tag, "before")
                if baseline is not None:
                    check_regression(baseline, stats, opts.threshold)

    return stats