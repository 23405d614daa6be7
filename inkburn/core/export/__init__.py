"""
Background burn export.
"""
from .burn_worker import BurnRequest, BurnResult, BurnWorker

__all__ = ['BurnRequest', 'BurnResult', 'BurnWorker']
