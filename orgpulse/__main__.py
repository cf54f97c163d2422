"""
orgpulse - Main entry point.
"""

import sys

from orgpulse.cli import main

if __name__ == "__main__":
    sys.exit(main())
