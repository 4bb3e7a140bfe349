#!/usr/bin/env python3
"""
Entry point for calico-install CLI tool.
"""

import sys

from calico_install.cli.cli import main

if __name__ == "__main__":
    sys.exit(main())
