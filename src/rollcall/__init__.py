"""Rollcall, a directory service for the school cloud."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

__all__ = ["__version__"]

try:
    __version__ = version("rollcall")
except PackageNotFoundError:
    # Package not installed.
    __version__ = "0.0.0"
