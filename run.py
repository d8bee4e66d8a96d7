#!/usr/bin/env python3
"""
MultiLaunch Runner Script

Entry point for running MultiLaunch from a source checkout.

Usage:
    python run.py list                  # All discovered applications
    python run.py list safari --running # Filter and mark running apps
    python run.py launch Terminal       # Start another instance
    python run.py favorites list        # Show favorites
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from multilaunch.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
