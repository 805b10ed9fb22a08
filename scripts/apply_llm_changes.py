#!/usr/bin/env python3
"""CLI entry point: apply file blocks from an LLM response on stdin."""

from __future__ import annotations

import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from llm_apply.cli import main

if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
