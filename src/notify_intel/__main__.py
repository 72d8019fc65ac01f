"""
Notification Filter CLI Entry Point.

Run with: python -m notify_intel <command> [args]
"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
