from __future__ import annotations

import logging
import os
import sys
from typing import List, Optional, Sequence, Tuple

from imgupload.client.http import FilePart, UploadClient, UploadError
from imgupload.core.paths import DEFAULT_IMAGE, select_single_image

log = logging.getLogger("imgupload.invoker")

UPLOAD_URL = "http://127.0.0.1:8080/upload"
FIELD_NAME = "image"

# (filename, content-type override) for the fixed multi-file upload
MULTI_IMAGES: Tuple[Tuple[str, Optional[str]], ...] = (
    (DEFAULT_IMAGE, None),
    ("pic2.jpg", None),
    ("pic3.bmp", "image/bmp"),
)


def build_multi_parts(base_dir: str) -> List[FilePart]:
    """Parts for the fixed three-image upload."""

    return [
        FilePart(FIELD_NAME, os.path.join(base_dir, name), content_type)
        for name, content_type in MULTI_IMAGES
    ]


def build_single_parts(argument: Optional[str], base_dir: str) -> List[FilePart]:
    """One part: `argument` if it is a regular file, else the default image."""

    return [FilePart(FIELD_NAME, select_single_image(argument, base_dir))]


def invoke(
    parts: Sequence[FilePart],
    *,
    url: str = UPLOAD_URL,
    client: Optional[UploadClient] = None,
) -> int:
    """Send one multipart POST and return the process exit status.

    The status is 0 whenever a response arrives, whatever its HTTP code.
    The response body goes to stdout untouched.
    """

    client = client or UploadClient()
    log.debug("uploading %d part(s) to %s", len(parts), url)
    try:
        resp = client.post_multipart(url, parts)
    except UploadError as e:
        print(f"imgupload: ({e.exit_code}) {e}", file=sys.stderr)
        return e.exit_code

    _write_body(resp.body_bytes)
    return 0


def _write_body(body: bytes) -> None:
    out = sys.stdout
    out.flush()
    buffer = getattr(out, "buffer", None)
    if buffer is None:
        out.write(body.decode("utf-8", errors="replace"))
    else:
        buffer.write(body)
    out.flush()
