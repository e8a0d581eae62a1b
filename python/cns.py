#!/usr/bin/env python3
"""Entry point for the cns console."""

from __future__ import annotations

from cns_cli import main

if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
