#!/usr/bin/env python3
"""
Build the blog and publish it to the deploy branch.

Drop-in replacement for the old script/deploy.sh variants. Unlike those,
it stops at the first failing step, never leaves the deploy branch half
written, and always switches back to the branch you started on.

Run from the blog working copy (or pass --repo):
  python scripts/deploy.py
  # or, once installed
  blogdeploy

Configuration: deploy.yaml in the project root, BLOGDEPLOY_* env vars or .env.
"""

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from blogdeploy.main import main

if __name__ == "__main__":
    sys.exit(main(["publish", *sys.argv[1:]]))
