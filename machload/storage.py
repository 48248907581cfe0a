"""On-disk history of runs and tagged baselines under ``~/.mach``."""

from __future__ import annotations

import json
import os
import re
from datetime import datetime
from pathlib import Path

from machload.models import MAX_URLS
from machload.stats import Stats

_TAGGED_INT_FIELDS = ("total_requests", "success", "failed")
_TAGGED_FLOAT_FIELDS = (
    "avg_latency",
    "min_latency",
    "max_latency",
    "p50_latency",
    "p95_latency",
    "p99_latency",
    "rps",
    "total_duration_s",
)
_NUMBER = r"(-?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?|-?inf|nan)"


def read_file(filename: str | os.PathLike) -> str | None:
    """Return the whole file as text, or None when it cannot be read."""
    try:
        return Path(filename).read_bytes().decode("utf-8", errors="replace")
    except OSError:
        return None


def load_urls(filename: str | os.PathLike, max_urls: int = MAX_URLS) -> list[str]:
    """Read URLs one per line, skipping blank lines and ``#`` comments."""
    urls: list[str] = []
    try:
        with open(filename, encoding="utf-8", errors="replace", newline="") as f:
            for line in f:
                if len(urls) >= max_urls:
                    break
                if line.endswith("\n"):
                    line = line[:-1]
                if line and not line.startswith("#"):
                    urls.append(line)
    except OSError:
        return []
    return urls


class Storage:
    """History and tag files kept in a ``.mach`` directory under ``home``."""

    def __init__(self, home: str | os.PathLike | None = None) -> None:
        if home is None:
            home = os.environ.get("HOME") or Path.home()
        self.root = Path(home) / ".mach"
        self.history_dir = self.root / "history"
        self.tags_dir = self.root / "tags"

    def ensure_dirs(self) -> None:
        """Create the storage directories if they are missing."""
        for path in (self.root, self.history_dir, self.tags_dir):
            path.mkdir(parents=True, exist_ok=True)

    def save_run(
        self,
        url: str,
        requests: int,
        success: int,
        failed: int,
        avg_latency: float,
        rps: float,
        now: datetime | None = None,
    ) -> Path | None:
        """Write a run record named after its local time; None if it cannot be written."""
        now = now or datetime.now()
        path = self.history_dir / f"{now.strftime('%Y%m%d-%H%M%S')}.json"
        text = (
            "{\n"
            f'  "timestamp": "{int(now.timestamp())}",\n'
            f"  \"url\": {json.dumps(url)},\n"
            f'  "total_requests": {requests},\n'
            f'  "successful": {success},\n'
            f'  "failed": {failed},\n'
            f'  "avg_latency_ms": {avg_latency:.2f},\n'
            f'  "rps": {rps:.2f}\n'
            "}\n"
        )
        try:
            path.write_text(text, encoding="utf-8")
        except OSError:
            return None
        return path

    def list_history(self, max_files: int = 100) -> list[str]:
        """Names of stored run files, at most ``max_files`` of them."""
        try:
            names = sorted(p.name for p in self.history_dir.iterdir() if ".json" in p.name)
        except OSError:
            return []
        return names[:max_files]

    def read_history(self, name: str) -> str | None:
        """Contents of one history file, or None if missing."""
        return read_file(self.history_dir / name)

    def clear_history(self) -> int:
        """Delete every stored run file and return how many were removed."""
        removed = 0
        try:
            entries = list(self.history_dir.iterdir())
        except OSError:
            return 0
        for entry in entries:
            if ".json" in entry.name:
                try:
                    entry.unlink()
                    removed += 1
                except OSError:
                    pass
        return removed

    def _tag_file(self, tag: str, kind: str) -> Path:
        return self.tags_dir / tag / f"{kind}.json"

    def save_tagged(self, tag: str, kind: str, stats: Stats) -> Path | None:
        """Store ``stats`` as the ``kind`` (before/after) snapshot of ``tag``."""
        path = self._tag_file(tag, kind)
        lines = [f'  "{name}": {getattr(stats, name)}' for name in _TAGGED_INT_FIELDS]
        lines += [f'  "{name}": {getattr(stats, name):.4f}' for name in _TAGGED_FLOAT_FIELDS]
        text = "{\n" + ",\n".join(lines) + "\n}\n"
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        except OSError:
            return None
        return path

    def load_tagged(self, tag: str, kind: str) -> Stats | None:
        """Load a tagged snapshot, or None when it does not exist."""
        data = read_file(self._tag_file(tag, kind))
        if data is None:
            return None
        stats = Stats()
        for name in _TAGGED_INT_FIELDS + _TAGGED_FLOAT_FIELDS:
            match = re.search(rf'"{name}"\s*:\s*{_NUMBER}', data)
            if not match:
                continue
            value = float(match.group(1))
            setattr(stats, name, int(value) if name in _TAGGED_INT_FIELDS else value)
        return stats