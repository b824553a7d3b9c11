"""Entry point for running as a module."""

import sys

from pin_radio.cli import main

if __name__ == "__main__":
    sys.exit(main())
