"""
Foucault - a notebook-based note taking engine.
Notebooks are SQLite-backed collections of markdown notes with tags and
name-keyed cross-references. A notebook can be used locally or served over
HTTP so that a remote client drives it through the same API.

This version uses synchronous operations.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("foucault")
except PackageNotFoundError:
    __version__ = "0.3.4"
