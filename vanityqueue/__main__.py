"""Entry point for python -m vanityqueue."""

import sys

from vanityqueue.cli import main

if __name__ == "__main__":
    sys.exit(main())
