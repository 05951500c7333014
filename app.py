#!/usr/bin/env python
"""
Diff Graph Colorizer - entrypoint.
Version: 1.0.0
"""

import sys

from diffgraph.cli import main

if __name__ == "__main__":
    sys.exit(main())
