"""WSGI middleware that writes one access-log record per request."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

_PATH_SAFE = "/;=,:@!$&'()*+~"


@dataclass
class _Exchange:
    start: float
    status_code: int = 0
    response_size: int = 0
    logged: bool = False


def _request_uri(environ: dict[str, Any]) -> str:
    raw = environ.get("REQUEST_URI")
    if raw:
        return raw
    path = environ.get("SCRIPT_NAME", "") + environ.get("PATH_INFO", "")
    uri = quote(path, safe=_PATH_SAFE, encoding="latin-1")
    query = environ.get("QUERY_STRING", "")
    return f"{uri}?{query}" if query else uri


def _request_size(environ: dict[str, Any]) -> int:
    text = (environ.get("CONTENT_LENGTH") or "").strip()
    if not text:
        return 0
    try:
        return int(text)
    except ValueError:
        return -1


class _LoggedBody:
    """Response iterable that counts bytes and logs once when closed."""

    def __init__(
        self,
        body: Iterable[bytes],
        exchange: _Exchange,
        on_close: Callable[[_Exchange], None],
    ) -> None:
        self._body = body
        self._exchange = exchange
        self._on_close = on_close

    def __iter__(self) -> Iterator[bytes]:
        for chunk in self._body:
            self._exchange.response_size += len(chunk)
            yield chunk

    def close(self) -> None:
        try:
            close = getattr(self._body, "close", None)
            if close is not None:
                close()
        finally:
            if not self._exchange.logged:
                self._exchange.logged = True
                self._on_close(self._exchange)


class AccessLogMiddleware:
    """Wraps a WSGI application and logs method, URL, status and sizes of each request.

    Each record has the message ``access`` and carries its fields as the
    ``fields`` attribute of the log record.
    """

    def __init__(self, app: Callable[..., Iterable[bytes]], logger: logging.Logger | None = None) -> None:
        self.app = app
        self.logger = logger if logger is not None else logging.getLogger("topolvm.access")

    def __call__(self, environ: dict[str, Any], start_response: Callable[..., Any]) -> _LoggedBody:
        exchange = _Exchange(start=time.monotonic())

        def counting_start_response(status: str, headers: list, exc_info: Any = None) -> Callable[[bytes], Any]:
            exchange.status_code = int(status.split(" ", 1)[0])
            write = start_response(status, headers, exc_info)

            def counting_write(data: bytes) -> Any:
                exchange.response_size += len(data)
                return write(data)

            return counting_write

        body = self.app(environ, counting_start_response)
        return _LoggedBody(body, exchange, lambda done: self._log(environ, done))

    def _log(self, environ: dict[str, Any], exchange: _Exchange) -> None:
        fields: dict[str, Any] = {
            "type": "access",
            "response_time": time.monotonic() - exchange.start,
            "protocol": environ.get("SERVER_PROTOCOL", ""),
            "http_status_code": exchange.status_code,
            "http_method": environ.get("REQUEST_METHOD", ""),
            "url": _request_uri(environ),
            "http_host": environ.get("HTTP_HOST", ""),
            "request_size": _request_size(environ),
            "response_size": exchange.response_size,
        }
        remote = environ.get("REMOTE_ADDR")
        if remote:
            fields["remote_ipaddr"] = remote
        user_agent = environ.get("HTTP_USER_AGENT", "")
        if user_agent:
            fields["http_user_agent"] = user_agent
        self.logger.info("access", extra={"fields": fields})