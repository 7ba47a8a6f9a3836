"""CLI package exports for top-level command entry points."""

from __future__ import annotations

from .main import VBMModalCLI, main

__all__ = ['VBMModalCLI', 'main']
