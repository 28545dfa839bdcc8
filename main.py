#!/usr/bin/env python3
"""
Compute Engine Managed Instance Group Adapter

- create / update a group from a JSON configuration file
- read, delete or import a group by identifier

This script supports running directly from a source checkout that uses a
src/ layout: the local `src/` directory is added to sys.path before the
modules are imported. For production use, prefer installing the project and
using the provided console script.
"""

import os
import sys

# Add src/ to path to import modules directly
REPO_ROOT = os.path.dirname(os.path.abspath(__file__))
SRC_PATH = os.path.join(REPO_ROOT, "src")
if SRC_PATH not in sys.path:
    sys.path.insert(0, SRC_PATH)

from cli import main

if __name__ == "__main__":
    sys.exit(main())
