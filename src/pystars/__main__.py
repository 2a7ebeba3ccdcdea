"""Entry point for ``python -m pystars``."""
import sys

from pystars.cli import main

if __name__ == "__main__":
    sys.exit(main())
