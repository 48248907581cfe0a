"""Core data types shared by the load tester."""

from __future__ import annotations

from dataclasses import dataclass, field

VERSION = "1.1.1"
MAX_URLS = 1024
MAX_HEADERS = 64

_MAX_KEY_LEN = 127
_MAX_VALUE_LEN = 511


@dataclass
class Header:
    """A single extra HTTP request header."""

    key: str
    value: str


@dataclass
class Options:
    """Settings for one load-test run."""

    urls: list[str] = field(default_factory=list)
    method: str = "GET"
    headers: list[Header] = field(default_factory=list)
    body: str | None = None
    requests: int = 100
    concurrency: int = 10
    rps: int = 0
    duration_s: int = 0
    body_file: str | None = None
    urls_file: str | None = None
    profile: str | None = None
    ramp_up_s: float = 0.0
    timeout_s: float = 10.0
    insecure: bool = False
    proxy_url: str | None = None
    output_file: str | None = None
    quiet: bool = False
    no_color: bool = False
    tag: str | None = None
    before: bool = False
    after: bool = False
    show_result: bool = False
    threshold: float = 0.0

    def add_header(self, spec: str) -> bool:
        """Add a header given as ``Key:Value``.

        Returns False when the spec has no colon or the header limit is reached.
        """
        key, sep, value = spec.partition(":")
        if not sep or len(self.headers) >= MAX_HEADERS:
            return False
        self.headers.append(Header(key[:_MAX_KEY_LEN], value[:_MAX_VALUE_LEN]))
        return True


@dataclass
class Result:
    """Outcome of one HTTP request."""

    url: str
    status_code: int = 0
    duration_ms: float = 0.0
    error: str | None = None

    def ok(self) -> bool:
        """True for 2xx and 3xx responses."""
        return 200 <= self.status_code < 400