"""Minimal HTTP/1.1 client used to fire requests at a target."""

from __future__ import annotations

import os
import re
import socket
import ssl
import time
from collections.abc import Iterable
from dataclasses import dataclass

from machload.models import Header, Result

USER_AGENT = "Mach/1.0"
EMPTY_RESPONSE_ERROR = "Empty response or read error"

_RESPONSE_READ_SIZE = 4095
_FETCH_LIMIT = 65535
_DOWNLOAD_CHUNK = 8192
_FETCH_TIMEOUT_S = 5.0
_DOWNLOAD_TIMEOUT_S = 30.0
_MAX_PATH_LEN = 1023

_URL_RE = re.compile(r"([^ :]{1,7})://([^:/]{1,255})(?::(\d+))?(\S*)")
_STATUS_RE = re.compile(rb"HTTP/\d+(?:\.\d+)?[ \t]+(\d{3})")
_HEADER_END = b"\r\n\r\n"


@dataclass(frozen=True)
class Target:
    """The parts of a URL needed to open a connection and address a resource."""

    scheme: str
    host: str
    port: int
    path: str

    @property
    def is_https(self) -> bool:
        return self.scheme == "https"


def parse_url(url: str) -> Target:
    """Split ``scheme://host[:port][path]`` into a Target.

    The port defaults to 80, or 443 for https. Raises ValueError when the
    URL does not have that shape.
    """
    match = _URL_RE.match(url)
    if not match:
        raise ValueError(f"invalid URL: {url!r}")
    scheme, host, port_text, path = match.groups()
    port = int(port_text) if port_text else 80
    if scheme == "https" and port == 80:
        port = 443
    path = path[:_MAX_PATH_LEN] or "/"
    return Target(scheme=scheme, host=host, port=port, path=path)


def parse_status(response: bytes | str) -> int:
    """Status code from the status line of a response, or 0 if there is none."""
    if isinstance(response, str):
        response = response.encode("latin-1", errors="replace")
    match = _STATUS_RE.match(response)
    return int(match.group(1)) if match else 0


def build_request(
    method: str,
    target: Target,
    headers: Iterable[Header] = (),
    body: str | bytes | None = None,
    keep_alive: bool = True,
) -> bytes:
    """Serialise a request for ``target`` into wire bytes."""
    connection = "keep-alive" if keep_alive else "close"
    lines = [
        f"{method} {target.path} HTTP/1.1",
        f"Host: {target.host}",
        f"Connection: {connection}",
        f"User-Agent: {USER_AGENT}",
    ]
    lines.extend(f"{h.key}: {h.value}" for h in headers)
    payload = body.encode("utf-8") if isinstance(body, str) else (body or b"")
    if payload:
        lines.append(f"Content-Length: {len(payload)}")
    head = "".join(f"{line}\r\n" for line in lines) + "\r\n"
    return head.encode("utf-8") + payload


class Connection:
    """An open (optionally TLS) connection to a single host."""

    def __init__(self, sock: socket.socket, is_https: bool = False) -> None:
        self.sock = sock
        self.is_https = is_https

    def send(
        self,
        url: str,
        method: str = "GET",
        headers: Iterable[Header] = (),
        body: str | bytes | None = None,
    ) -> Result:
        """Send one request and time it until the first response bytes arrive."""
        request = build_request(method, parse_url(url), headers, body, keep_alive=True)
        start = time.perf_counter()
        try:
            self.sock.sendall(request)
        except OSError:
            pass
        try:
            response = self.sock.recv(_RESPONSE_READ_SIZE)
        except OSError:
            response = b""
        duration_ms = (time.perf_counter() - start) * 1000.0
        if response:
            return Result(url=url, status_code=parse_status(response), duration_ms=duration_ms)
        return Result(url=url, duration_ms=duration_ms, error=EMPTY_RESPONSE_ERROR)

    def _read_all(self, limit: int | None = None, chunk: int = _DOWNLOAD_CHUNK):
        """Yield received chunks until EOF, an error, or ``limit`` bytes."""
        total = 0
        while limit is None or total < limit:
            size = chunk if limit is None else min(chunk, limit - total)
            try:
                data = self.sock.recv(size)
            except OSError:
                return
            if not data:
                return
            total += len(data)
            yield data

    def close(self) -> None:
        """Shut down TLS if in use and close the socket."""
        if self.is_https and isinstance(self.sock, ssl.SSLSocket):
            try:
                self.sock.unwrap()
            except (OSError, ValueError):
                pass
        try:
            self.sock.close()
        except OSError:
            pass

    def __enter__(self) -> Connection:
        return self

    def __exit__(self, *args) -> None:
        self.close()


def connect(url: str, insecure: bool = False, timeout: float = 10.0) -> Connection:
    """Open a connection to the host named in ``url``.

    Raises ValueError for a malformed URL and OSError when the host cannot be
    resolved or reached or the TLS handshake fails. A timeout of 0 or less
    means no timeout.
    """
    target = parse_url(url)
    sock_timeout = timeout if timeout and timeout > 0 else None
    sock = socket.create_connection((target.host, target.port), timeout=sock_timeout)
    if not target.is_https:
        return Connection(sock, is_https=False)
    context = ssl.create_default_context()
    if insecure:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    try:
        tls_sock = context.wrap_socket(sock, server_hostname=target.host)
    except OSError:
        sock.close()
        raise
    return Connection(tls_sock, is_https=True)


def split_body(raw: bytes) -> bytes | None:
    """The part of a raw response after the header block, or None if it has none."""
    head, sep, body = raw.partition(_HEADER_END)
    return body if sep else None


def fetch_body(url: str, insecure: bool = False) -> str:
    """GET ``url`` and return the response body as text (first 64 KiB).

    Raises OSError if the connection fails and ValueError if the response
    has no complete header block.
    """
    target = parse_url(url)
    with connect(url, insecure, _FETCH_TIMEOUT_S) as conn:
        try:
            conn.sock.sendall(build_request("GET", target, keep_alive=False))
        except OSError:
            pass
        raw = b"".join(conn._read_all(limit=_FETCH_LIMIT))
    body = split_body(raw)
    if body is None:
        raise ValueError("response has no header terminator")
    return body.decode("utf-8", errors="replace")


def download_to_file(url: str, path: str | os.PathLike, insecure: bool = False) -> int:
    """GET ``url`` and write the response body to ``path``.

    Returns the number of body bytes written. Raises OSError if the
    connection fails or the file cannot be opened.
    """
    target = parse_url(url)
    with connect(url, insecure, _DOWNLOAD_TIMEOUT_S) as conn:
        try:
            conn.sock.sendall(build_request("GET", target, keep_alive=False))
        except OSError:
            pass
        written = 0
        pending = b""
        header_done = False
        with open(path, "wb") as out:
            for chunk in conn._read_all():
                if header_done:
                    out.write(chunk)
                    written += len(chunk)
                    continue
                pending += chunk
                body = split_body(pending)
                if body is not None:
                    header_done = True
                    pending = b""
                    out.write(body)
                    written += len(body)
    return written