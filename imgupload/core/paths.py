from __future__ import annotations

import os
from typing import Optional

DEFAULT_IMAGE = "pic1.png"


def resolve_script_dir(script_path: str) -> str:
    """Canonical directory holding the invoked script.

    Symlinks are resolved first, so a symlinked script and its target share the
    same directory, and the result does not depend on the current working
    directory.
    """

    return os.path.dirname(os.path.realpath(script_path))


def select_single_image(argument: Optional[str], base_dir: str) -> str:
    """Pick the file for a single-file upload.

    `argument` wins only if it names an existing regular file; anything else
    (None, empty, missing path, directory) falls back to the default image
    in `base_dir`.
    """

    if argument and os.path.isfile(argument):
        return argument
    return os.path.join(base_dir, DEFAULT_IMAGE)
