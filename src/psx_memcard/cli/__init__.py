"""
PSX Memory Card Command-Line Interface
======================================

This package provides the ``psxmc`` command-line tool, a Click-based
front end for inspecting, searching, re-saving and formatting memory card
images and exporting their save icons.
"""

__all__ = ["psxmc"]
