"""Knotwork module entrypoint."""

import sys

from knotwork.cli import main

if __name__ == "__main__":
    sys.exit(main())
