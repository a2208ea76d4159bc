"""Sentinel for "argument not given" where None is a legitimate value."""

from __future__ import annotations

from typing import Any

__all__ = ['MISSING']

MISSING: Any = object()
