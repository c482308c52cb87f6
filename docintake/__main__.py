"""
Entry point for running the package as a module: python -m docintake
"""

import sys
from docintake.cli import main

if __name__ == "__main__":
    sys.exit(main())
