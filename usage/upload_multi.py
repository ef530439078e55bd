#!/usr/bin/env python3
"""Upload pic1.png, pic2.jpg and pic3.bmp from this directory in one request."""

from imgupload.cli.main import main_multi

if __name__ == "__main__":
    raise SystemExit(main_multi(script_path=__file__))
