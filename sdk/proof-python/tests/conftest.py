import json
import socket
from contextlib import closing
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from threading import Thread

import pytest

from proof_sdk.utils import ServerAttributes


class MockOllamaHandler(BaseHTTPRequestHandler):
    def _dispatch(self, method: str):
        length = int(self.headers.get("Content-Length") or 0)
        raw = self.rfile.read(length) if length else b""
        self.server.requests.append((method, self.path, json.loads(raw) if raw else None))

        route = self.server.routes.get((method, self.path))
        if route is None:
            self.send_response(404)
            self.send_header("Content-Length", "0")
            self.end_headers()
            return

        status, fragments = route
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        if len(fragments) == 1:
            self.send_header("Content-Length", str(len(fragments[0])))
        self.end_headers()
        for fragment in fragments:
            self.wfile.write(fragment)
            self.wfile.flush()

    def do_GET(self):
        self._dispatch("GET")

    def do_POST(self):
        self._dispatch("POST")

    def do_DELETE(self):
        self._dispatch("DELETE")

    def log_message(self, format, *args):
        pass


class MockOllamaServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self):
        super().__init__(("127.0.0.1", 0), MockOllamaHandler)
        self.routes: dict[tuple[str, str], tuple[int, list[bytes]]] = {}
        self.requests: list[tuple[str, str, dict | None]] = []

    @property
    def port(self) -> int:
        return self.server_address[1]

    def respond_json(self, method: str, path: str, body, status: int = 200):
        self.routes[(method, path)] = (status, [json.dumps(body).encode()])

    def respond_stream(self, path: str, fragments: list[bytes], status: int = 200):
        self.routes[("POST", path)] = (status, list(fragments))


@pytest.fixture
def mock_ollama():
    try:
        server = MockOllamaServer()
    except PermissionError as exc:
        pytest.skip(f"Local HTTP server unavailable in this environment: {exc}")
    thread = Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.shutdown()
    server.server_close()
    thread.join(timeout=1)


@pytest.fixture
def server_attrs(mock_ollama) -> ServerAttributes:
    return ServerAttributes(host="127.0.0.1", port=mock_ollama.port)


@pytest.fixture
def unreachable_attrs() -> ServerAttributes:
    with closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(("127.0.0.1", 0))
        port = s.getsockname()[1]
    return ServerAttributes(host="127.0.0.1", port=port)
