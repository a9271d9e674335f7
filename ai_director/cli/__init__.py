"""
CLI module - `ai-director` command line
"""

from .main import main

__all__ = ['main']
