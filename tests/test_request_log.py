import logging

import pytest

from comandad.request_log import RequestLogger, mask_authorization


def _app(status, body):
    def app(environ, start_response):
        start_response(status, [("Content-Type", "text/plain")])
        return [body]
    return app


def _environ(method="GET", path="/list", query="", auth=None):
    environ = {"REQUEST_METHOD": method, "PATH_INFO": path, "QUERY_STRING": query,
               "REMOTE_ADDR": "127.0.0.1", "wsgi.url_scheme": "http"}
    if auth is not None:
        environ["HTTP_AUTHORIZATION"] = auth
    return environ


def _start_response(status, headers, exc_info=None):
    return lambda data: None


def test_mask_authorization_hides_credentials():
    masked = mask_authorization("Bearer token")
    assert masked == "Bearer ********"
    assert "token" not in masked


def test_mask_authorization_empty_header():
    assert mask_authorization("") == ""


def test_mask_authorization_too_short():
    with pytest.raises(ValueError):
        mask_authorization("Basic")


def test_request_logger_passes_body_through(caplog):
    caplog.set_level(logging.DEBUG, logger="comandad.requests")
    body = b"hello world"
    middleware = RequestLogger(_app("200 OK", body))
    result = list(middleware(_environ(), _start_response))
    assert b"".join(result) == body
    messages = [r.getMessage() for r in caplog.records]
    assert any(f"bytes={len(body)}" in m for m in messages)


def test_request_logger_logs_summary_line(caplog):
    caplog.set_level(logging.DEBUG, logger="comandad.requests")
    middleware = RequestLogger(_app("404 Not Found", b"{}"))
    list(middleware(_environ(method="DELETE", path="/files", query="path=a.txt",
                             auth="Bearer token"), _start_response))
    summary = [r.getMessage() for r in caplog.records if r.getMessage().startswith("Request: ")]
    assert len(summary) == 1
    line = summary[0]
    assert "method=DELETE" in line
    assert "path=/files" in line
    assert "query=path=a.txt" in line
    assert "status=404" in line
    assert "auth=Bearer ********" in line


def test_request_logger_reports_error_details(caplog):
    caplog.set_level(logging.DEBUG, logger="comandad.requests")
    middleware = RequestLogger(_app("500 Internal Server Error", b"x"))
    list(middleware(_environ(), _start_response))
    messages = [r.getMessage() for r in caplog.records]
    assert "Error response details:" in messages
    assert "- Status Code: 500" in messages


def test_request_logger_success_has_no_error_details(caplog):
    caplog.set_level(logging.DEBUG, logger="comandad.requests")
    middleware = RequestLogger(_app("200 OK", b"ok"))
    list(middleware(_environ(), _start_response))
    messages = [r.getMessage() for r in caplog.records]
    assert "Error response details:" not in messages
    assert any("status=200" in m for m in messages)


def test_request_logger_closes_inner_iterable():
    closed = []

    class Body:
        def __iter__(self):
            yield b"a"

        def close(self):
            closed.append(True)

    def app(environ, start_response):
        start_response("200 OK", [])
        return Body()

    assert list(RequestLogger(app)(_environ(), _start_response)) == [b"a"]
    assert closed == [True]