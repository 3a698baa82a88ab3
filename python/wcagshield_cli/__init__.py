# SPDX-License-Identifier: AGPL-3.0-only
"""Command line interface for the wcagshield scanner."""
from .cli import main

__all__ = ["main"]
