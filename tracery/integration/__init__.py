"""
tracery Integration Module
==========================

Bridge functions for callers such as the CLI.

Key Functions:
- run_analysis(): Main entry point for running an analysis
"""

from .bridge import run_analysis
