from __future__ import annotations

import argparse
import logging
import sys
from typing import List

from imgupload.core.invoker import UPLOAD_URL, build_multi_parts, build_single_parts, invoke
from imgupload.core.paths import resolve_script_dir


def _configure_logging() -> None:
    """Send the request/response trace to stderr, one bare line per record."""

    logger = logging.getLogger("imgupload")
    for h in [h for h in logger.handlers if getattr(h, "_imgupload_trace", False)]:
        logger.removeHandler(h)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))
    handler._imgupload_trace = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    logger.propagate = False


def cmd_multi(args: argparse.Namespace) -> int:
    """Upload pic1.png, pic2.jpg and pic3.bmp (as image/bmp) from the script directory."""
    base_dir = resolve_script_dir(args.script_path)
    return invoke(build_multi_parts(base_dir), url=args.url)


def cmd_single(args: argparse.Namespace) -> int:
    """Upload one image, falling back to pic1.png next to the script."""
    base_dir = resolve_script_dir(args.script_path)
    return invoke(build_single_parts(args.image, base_dir), url=args.url)


def _add_single_args(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "image",
        nargs="?",
        default=None,
        help="Path to an image; ignored unless it is an existing regular file",
    )


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="imgupload",
        description="Upload images as multipart/form-data to " + UPLOAD_URL,
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    mp = sub.add_parser("multi", help="Upload the three bundled images in one request")
    mp.set_defaults(func=cmd_multi)

    sp = sub.add_parser("single", help="Upload one image (default: bundled pic1.png)")
    _add_single_args(sp)
    sp.set_defaults(func=cmd_single)

    return p


def _run(args: argparse.Namespace, script_path: str, url: str) -> int:
    args.script_path = script_path
    args.url = url
    _configure_logging()
    return int(args.func(args))


def main(argv: List[str] | None = None, *, script_path: str, url: str = UPLOAD_URL) -> int:
    """CLI entry.

    `script_path` is the invoked script; the default images are looked up in
    its canonical directory.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    return _run(args, script_path, url)


def main_multi(argv: List[str] | None = None, *, script_path: str, url: str = UPLOAD_URL) -> int:
    """Entry for the fixed multi-file invoker; takes no arguments."""
    parser = argparse.ArgumentParser(prog="upload_multi.py", description=cmd_multi.__doc__)
    args = parser.parse_args(argv)
    args.func = cmd_multi
    return _run(args, script_path, url)


def main_single(argv: List[str] | None = None, *, script_path: str, url: str = UPLOAD_URL) -> int:
    """Entry for the single-file invoker: `upload_single.py [image]`."""
    parser = argparse.ArgumentParser(prog="upload_single.py", description=cmd_single.__doc__)
    _add_single_args(parser)
    args = parser.parse_args(argv)
    args.func = cmd_single
    return _run(args, script_path, url)

