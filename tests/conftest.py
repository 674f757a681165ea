"""
Pytest configuration and fixtures for simplehttp tests
"""

import json
import ssl
import threading
from contextlib import contextmanager
from http.server import BaseHTTPRequestHandler, HTTPServer

import pytest

from simplehttp import HttpClient
from tests.test_helpers import fixture_path


class EchoHandler(BaseHTTPRequestHandler):
    """
    Local test server

    GET /status/<code>  -> responds with <code> and a small JSON error body
    GET /headers        -> responds with the received headers as JSON
    GET /not-json       -> responds 200 with a plain text body
    GET /plain-utf8     -> responds 200 with UTF-8 text and no charset in Content-Type
    POST/PUT anything   -> echoes the request body and Content-Type back
    """

    def log_message(self, format, *args):
        pass

    def _respond(self, status, body, content_type="application/json"):
        data = body.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def do_GET(self):
        if self.path.startswith("/status/"):
            status = int(self.path.rsplit("/", 1)[1])
            self._respond(status, json.dumps({"error": "status", "code": status}))
        elif self.path == "/headers":
            self._respond(200, json.dumps(dict(self.headers.items())))
        elif self.path == "/plain-utf8":
            self._respond(200, "grüße", content_type="text/plain")
        elif self.path == "/not-json":
            self._respond(200, "this is not json", content_type="text/plain")
        else:
            self._respond(200, json.dumps({"path": self.path}))

    def _echo(self):
        length = int(self.headers.get("Content-Length", 0))
        body = self.rfile.read(length).decode("utf-8")
        self._respond(200, body, self.headers.get("Content-Type", "text/plain"))

    do_POST = _echo
    do_PUT = _echo


@contextmanager
def running(server: HTTPServer):
    """Serve requests in a background thread until the block exits"""
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield server
    finally:
        server.shutdown()
        server.server_close()


@pytest.fixture
def echo_server():
    """Start the echo server on a free localhost port and yield its base URL"""
    with running(HTTPServer(("127.0.0.1", 0), EchoHandler)) as server:
        yield f"http://127.0.0.1:{server.server_address[1]}"


@pytest.fixture
def tls_server():
    """
    Start the echo server behind TLS and yield its base URL

    The server certificate (tests/fixtures/localhost.pem) is issued for
    localhost and 127.0.0.1 by the test CA in tests/fixtures/ca.pem.
    """
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.load_cert_chain(fixture_path("localhost.pem"), fixture_path("localhost-key.pem"))

    server = HTTPServer(("127.0.0.1", 0), EchoHandler)
    server.socket = context.wrap_socket(server.socket, server_side=True)
    with running(server):
        yield f"https://127.0.0.1:{server.server_address[1]}"


@pytest.fixture
def client():
    """Client against a fake server; tests patch session.send"""
    http_client = HttpClient("https://api.example.com")
    yield http_client
    http_client.close()


@pytest.fixture
def client_config_dict():
    """Minimal client configuration"""
    return {
        "client": {
            "base_url": "https://api.example.com",
            "headers": {"X-Api-Key": "test-key-123", "X-Retries": 0},
            "auth": {"bearer_token": "abc"},
            "debug": True,
        }
    }
