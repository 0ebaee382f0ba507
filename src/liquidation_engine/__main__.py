"""Entry point for running the liquidation CLI."""

import sys

from liquidation_engine.cli import main

if __name__ == "__main__":
    sys.exit(main())
