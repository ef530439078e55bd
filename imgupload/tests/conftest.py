from __future__ import annotations

import logging
import os
import socket
import threading
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Dict, List, Tuple

import pytest

USAGE_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), "usage")


@dataclass
class RecordedRequest:
    method: str
    path: str
    headers: Dict[str, str]
    body: bytes


@dataclass
class RecordingServer:
    """Local stand-in for the upload endpoint that records every request."""

    url: str
    requests: List[RecordedRequest] = field(default_factory=list)
    status: int = 200
    reply: bytes = b'["abc123"]'
    extra_headers: Dict[str, str] = field(default_factory=dict)
    protocol_version: str = "HTTP/1.1"


def _make_handler(server: RecordingServer):
    class Handler(BaseHTTPRequestHandler):
        def _record_and_reply(self):
            self.protocol_version = server.protocol_version
            length = int(self.headers.get("Content-Length") or 0)
            body = self.rfile.read(length)
            server.requests.append(
                RecordedRequest(
                    method=self.command,
                    path=self.path,
                    headers={k.lower(): v for k, v in self.headers.items()},
                    body=body,
                )
            )
            self.send_response(server.status)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(server.reply)))
            for name, value in server.extra_headers.items():
                self.send_header(name, value)
            self.end_headers()
            self.wfile.write(server.reply)

        do_POST = _record_and_reply  # noqa: N815
        do_GET = _record_and_reply  # noqa: N815

        def log_message(self, format, *args):  # noqa: A002
            pass

    return Handler


@pytest.fixture(autouse=True)
def _reset_trace_logging():
    yield
    logger = logging.getLogger("imgupload")
    for h in list(logger.handlers):
        logger.removeHandler(h)
    logger.propagate = True


@pytest.fixture
def upload_server():
    rec = RecordingServer(url="")
    httpd = ThreadingHTTPServer(("127.0.0.1", 0), _make_handler(rec))
    host, port = httpd.server_address[:2]
    rec.url = f"http://{host}:{port}/upload"
    t = threading.Thread(target=httpd.serve_forever, daemon=True)
    t.start()
    try:
        yield rec
    finally:
        httpd.shutdown()
        httpd.server_close()
        t.join(timeout=5)


@pytest.fixture
def usage_dir() -> str:
    return USAGE_DIR


def _parse_multipart(content_type: str, body: bytes) -> List[Tuple[Dict[str, str], bytes]]:
    """Split a multipart/form-data body into (headers, data) pairs."""

    assert content_type.startswith("multipart/form-data; boundary=")
    boundary = content_type.split("boundary=", 1)[1].encode("ascii")
    delimiter = b"--" + boundary
    assert body.endswith(delimiter + b"--\r\n")

    parts = []
    for chunk in body.split(delimiter)[1:-1]:
        assert chunk.startswith(b"\r\n") and chunk.endswith(b"\r\n")
        head, data = chunk[2:-2].split(b"\r\n\r\n", 1)
        headers = {}
        for line in head.decode("utf-8").split("\r\n"):
            name, value = line.split(":", 1)
            headers[name.strip().lower()] = value.strip()
        parts.append((headers, data))
    return parts


@pytest.fixture
def parse_multipart():
    return _parse_multipart


@pytest.fixture
def dead_url() -> str:
    """Upload URL on a port that nothing listens on."""

    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        port = s.getsockname()[1]
    return f"http://127.0.0.1:{port}/upload"
