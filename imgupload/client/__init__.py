"""HTTP client utilities for uploading images to the local upload endpoint.

Notes:
- Treat server responses as untrusted input.
- Avoid printing or logging raw file bytes.
"""

from .http import (  # noqa: F401
    FilePart,
    FileReadError,
    HttpResponse,
    TransportError,
    UploadClient,
    UploadError,
    encode_multipart,
)
