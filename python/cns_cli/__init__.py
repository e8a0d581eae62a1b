"""
cns CLI package.

Interactive console for the CNS namespace built on :mod:`cnskit`.  Use
``python -m cns_cli``, ``python/cns.py`` or the ``cns`` console script to
launch it.
"""

from __future__ import annotations

from .cli import main

__all__ = ["main"]
