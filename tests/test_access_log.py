import logging
from wsgiref.util import setup_testing_defaults

import pytest

from topolvm.access_log import AccessLogMiddleware


class _Collector(logging.Handler):
    def __init__(self):
        super().__init__(level=logging.INFO)
        self.records = []

    def emit(self, record):
        self.records.append(record)


@pytest.fixture
def collected():
    logger = logging.getLogger("tests.access_log")
    logger.setLevel(logging.INFO)
    logger.propagate = False
    handler = _Collector()
    logger.addHandler(handler)
    yield logger, handler.records
    logger.removeHandler(handler)


def _app(environ, start_response):
    if environ["PATH_INFO"] == "/hello":
        start_response("200 OK", [("Content-Type", "text/plain")])
        return [b"hello"]
    if environ["PATH_INFO"] == "/written":
        write = start_response("200 OK", [("Content-Type", "text/plain")])
        write(b"abc")
        return [b"de"]
    start_response("404 Not Found", [("Content-Type", "text/plain")])
    return [b"404 page not found\n"]


def _request(middleware, path, **extra):
    environ = {"PATH_INFO": path, "REQUEST_METHOD": "GET", "REMOTE_ADDR": "127.0.0.1"}
    environ.update(extra)
    setup_testing_defaults(environ)
    statuses = []

    def start_response(status, headers, exc_info=None):
        statuses.append(status)
        return lambda data: None

    body = middleware(environ, start_response)
    data = b"".join(body)
    body.close()
    return statuses[0], data


def test_access_log_handler(collected):
    logger, records = collected
    middleware = AccessLogMiddleware(_app, logger)
    hello_status, hello_data = _request(middleware, "/hello")
    notfound_status, notfound_data = _request(middleware, "/notfound")

    assert hello_status == "200 OK"
    assert hello_data == b"hello"
    assert notfound_status == "404 Not Found"
    assert notfound_data == b"404 page not found\n"
    assert len(records) == 2
    hello = records[0].fields
    notfound = records[1].fields
    assert records[0].getMessage() == "access"
    assert hello["type"] == "access"
    assert hello["http_status_code"] == 200
    assert hello["http_method"] == "GET"
    assert hello["url"] == "/hello"
    assert notfound["url"] == "/notfound"
    assert hello["response_size"] == 5


def test_response_passes_through(collected):
    logger, records = collected
    middleware = AccessLogMiddleware(_app, logger)
    status, data = _request(middleware, "/hello")
    assert status == "200 OK"
    assert data == b"hello"


def test_not_found_status_recorded(collected):
    logger, records = collected
    middleware = AccessLogMiddleware(_app, logger)
    _, data = _request(middleware, "/missing")
    assert records[0].fields["http_status_code"] == 404
    assert records[0].fields["response_size"] == len(data)


def test_write_callable_counted(collected):
    logger, records = collected
    middleware = AccessLogMiddleware(_app, logger)
    status, data = _request(middleware, "/written")
    assert status == "200 OK"
    assert data == b"de"
    assert records[0].fields["response_size"] == len(b"abc") + len(b"de")


def test_optional_fields(collected):
    logger, records = collected
    middleware = AccessLogMiddleware(_app, logger)
    first_status, first_data = _request(middleware, "/hello", HTTP_USER_AGENT="agent/1.0")
    second_status, second_data = _request(middleware, "/hello", REMOTE_ADDR="")
    assert first_status == second_status == "200 OK"
    assert first_data == second_data == b"hello"
    assert records[0].fields["http_user_agent"] == "agent/1.0"
    assert records[0].fields["remote_ipaddr"] == "127.0.0.1"
    assert "http_user_agent" not in records[1].fields
    assert "remote_ipaddr" not in records[1].fields


def test_query_string_and_request_size(collected):
    logger, records = collected
    middleware = AccessLogMiddleware(_app, logger)
    status, data = _request(
        middleware, "/hello", QUERY_STRING="a=b", CONTENT_LENGTH="12", REQUEST_METHOD="POST"
    )
    assert status == "200 OK"
    assert data == b"hello"
    fields = records[0].fields
    assert fields["url"] == "/hello?a=b"
    assert fields["request_size"] == 12
    assert fields["http_method"] == "POST"
    assert fields["response_time"] >= 0


def test_logs_once_when_closed_twice(collected):
    logger, records = collected
    middleware = AccessLogMiddleware(_app, logger)
    environ = {"PATH_INFO": "/hello"}
    setup_testing_defaults(environ)
    body = middleware(environ, lambda status, headers, exc_info=None: (lambda data: None))
    chunks = list(body)
    body.close()
    body.close()
    assert b"".join(chunks) == b"hello"
    assert len(records) == 1