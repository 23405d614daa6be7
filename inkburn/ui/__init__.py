"""
User interface components.
"""
from .windows import MainWindow

__all__ = ['MainWindow']
