"""Command-line interface module for Sync Log Parser.

This module provides the ``sync-log-parser`` tool for inspecting harness logs:
full parse results, sync history tables, and dashboard metrics.
"""

from .main import main

__all__ = ["main"]
