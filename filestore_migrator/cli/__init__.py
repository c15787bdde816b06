# ============================================
# FILE: filestore_migrator/cli/__init__.py
# ============================================
"""
CLI module for filestore-migrator - contains command-line interface components.
"""

from filestore_migrator.cli.main import main

__all__ = ["main"]
