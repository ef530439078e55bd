from __future__ import annotations

import errno
import logging
import mimetypes
import os
import socket
import uuid
from dataclasses import dataclass
from http.client import HTTPException
from typing import List, Mapping, Optional, Sequence, Tuple
from urllib.error import HTTPError, URLError
from urllib.parse import urlsplit
from urllib.request import HTTPRedirectHandler, Request, build_opener

log = logging.getLogger("imgupload.client")

# curl-compatible exit codes
EXIT_COULDNT_RESOLVE_HOST = 6
EXIT_COULDNT_CONNECT = 7
EXIT_READ_ERROR = 26
EXIT_OPERATION_TIMEDOUT = 28
EXIT_RECV_ERROR = 56

DEFAULT_CONTENT_TYPE = "application/octet-stream"

# percent-encoded inside a quoted filename, as curl does
_FILENAME_ESCAPES = {"\r": "%0D", "\n": "%0A"}


class UploadError(RuntimeError):
    """Base class for failures that abort an upload."""

    exit_code = 1

    def __init__(self, message: str, exit_code: Optional[int] = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class FileReadError(UploadError):
    """A local file for one of the parts could not be read."""

    exit_code = EXIT_READ_ERROR


class TransportError(UploadError):
    """The request never completed: resolution, connect or receive failure."""

    exit_code = EXIT_COULDNT_CONNECT


@dataclass(frozen=True, slots=True)
class FilePart:
    """One file part of a multipart/form-data body."""

    field_name: str
    path: str
    content_type: Optional[str] = None

    @property
    def filename(self) -> str:
        return os.path.basename(self.path)

    def resolved_content_type(self) -> str:
        """Explicit override, else a guess from the file name."""

        if self.content_type:
            return self.content_type
        return mimetypes.guess_type(self.filename)[0] or DEFAULT_CONTENT_TYPE


@dataclass(frozen=True, slots=True)
class HttpResponse:
    """HTTP response wrapper.

    The body is untrusted and is passed through as raw bytes.
    """

    status: int
    reason: str
    version: str
    headers: Mapping[str, str]
    body_bytes: bytes

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class UploadClient:
    """Stdlib-only HTTP client that POSTs multipart file uploads.

    One call sends one request and blocks until the response is read. There
    are no retries and no timeout.
    """

    def __init__(self, user_agent: str = "imgupload"):
        self.user_agent = user_agent

    def post_multipart(self, url: str, parts: Sequence[FilePart]) -> HttpResponse:
        """HTTP POST multipart/form-data.

        Every part is read before the connection is opened, so a missing file
        fails the invocation without any network I/O.

        Returns the response for any HTTP status. Raises `FileReadError` or
        `TransportError`.
        """

        body, boundary = encode_multipart(parts)
        req = Request(url=url, data=body, method="POST")
        req.add_header("User-Agent", self.user_agent)
        req.add_header("Accept", "*/*")
        req.add_header("Content-Type", f"multipart/form-data; boundary={boundary}")
        req.add_header("Content-Length", str(len(body)))
        _trace_request(req)
        return _do_request(req)


def _read_file(path: str) -> bytes:
    """Read a part's bytes."""

    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        raise FileReadError(
            f"Failed to open/read local data from file/application: {path}: {e.strerror or e}"
        ) from e


def encode_multipart(parts: Sequence[FilePart]) -> Tuple[bytes, str]:
    """Encode file parts as multipart/form-data.

    Returns (body, boundary). Parts keep their order.
    """

    boundary = "------------------------" + uuid.uuid4().hex[:24]
    crlf = "\r\n"
    chunks: List[bytes] = []

    for part in parts:
        data = _read_file(part.path)
        filename = _quote_filename(part.filename)
        chunks.append(f"--{boundary}{crlf}".encode("utf-8"))
        # undecodable bytes from the filesystem go out as-is
        chunks.append(
            f'Content-Disposition: form-data; name="{part.field_name}"; filename="{filename}"{crlf}'.encode(
                "utf-8", "surrogateescape"
            )
        )
        chunks.append(f"Content-Type: {part.resolved_content_type()}{crlf}{crlf}".encode("utf-8"))
        chunks.append(data)
        chunks.append(crlf.encode("utf-8"))

    chunks.append(f"--{boundary}--{crlf}".encode("utf-8"))
    return b"".join(chunks), boundary


def _quote_filename(name: str) -> str:
    name = name.replace("\\", "\\\\").replace('"', '\\"')
    for raw, escaped in _FILENAME_ESCAPES.items():
        name = name.replace(raw, escaped)
    return name


def _header_name(name: str) -> str:
    return "-".join(word.capitalize() for word in name.split("-"))


def _trace_request(req: Request) -> None:
    split = urlsplit(req.full_url)
    target = split.path or "/"
    if split.query:
        target = f"{target}?{split.query}"
    log.info("*   Trying %s...", split.netloc)
    log.info("> %s %s HTTP/1.1", req.get_method(), target)
    log.info("> Host: %s", split.netloc)
    for name, value in req.header_items():
        log.info("> %s: %s", _header_name(name), value)
    log.info(">")


def _trace_response(resp: HttpResponse) -> None:
    log.info("< %s %d %s", resp.version, resp.status, resp.reason)
    for name, value in resp.headers.items():
        log.info("< %s: %s", name, value)
    log.info("<")


def _http_version(raw: object) -> str:
    return {10: "HTTP/1.0", 11: "HTTP/1.1"}.get(raw, "HTTP/1.1")


class _NoRedirectHandler(HTTPRedirectHandler):
    """Hand 3xx responses back to the caller instead of following them."""

    def redirect_request(self, req, fp, code, msg, headers, newurl):
        return None


_opener = build_opener(_NoRedirectHandler)


def _classify_transport(reason: object) -> int:
    if isinstance(reason, socket.gaierror):
        return EXIT_COULDNT_RESOLVE_HOST
    if isinstance(reason, (socket.timeout, TimeoutError)):
        return EXIT_OPERATION_TIMEDOUT
    if isinstance(reason, (ConnectionRefusedError, ConnectionAbortedError)):
        return EXIT_COULDNT_CONNECT
    if isinstance(reason, OSError) and reason.errno in (errno.ENETUNREACH, errno.EHOSTUNREACH):
        return EXIT_COULDNT_CONNECT
    return EXIT_RECV_ERROR


def _do_request(req: Request) -> HttpResponse:
    """Execute a request.

    HTTP error and redirect statuses are returned as responses, not raised or
    followed.
    """

    try:
        with _opener.open(req) as resp:
            body = resp.read()
            result = HttpResponse(
                status=int(resp.status),
                reason=str(resp.reason or ""),
                version=_http_version(getattr(resp, "version", 11)),
                headers={k: v for k, v in resp.headers.items()},
                body_bytes=body,
            )
    except HTTPError as e:
        body = e.read() if hasattr(e, "read") else b""
        result = HttpResponse(
            status=int(getattr(e, "code", 0) or 0),
            reason=str(getattr(e, "reason", "") or ""),
            version=_http_version(getattr(getattr(e, "fp", None), "version", 11)),
            headers=dict(getattr(e, "headers", {}) or {}),
            body_bytes=body,
        )
    except URLError as e:
        code = _classify_transport(e.reason)
        host = urlsplit(req.full_url).netloc
        raise TransportError(f"Failed to connect to {host}: {e.reason}", code) from e
    except (ConnectionError, TimeoutError, HTTPException) as e:
        raise TransportError(
            f"Failure when receiving data from the peer: {e}", _classify_transport(e)
        ) from e
    _trace_response(result)
    return result
