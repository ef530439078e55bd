#!/usr/bin/env python3
"""Upload one image: the first argument if it is a file, else pic1.png from this directory."""

import sys

from imgupload.cli.main import main_single

if __name__ == "__main__":
    # "--" keeps a path such as "-x.png" from being read as an option
    raise SystemExit(main_single(["--", *sys.argv[1:2]], script_path=__file__))
