"""
Interactive annotation tools.
"""
from .state_machine import OutcomeKind, ToolOutcome, ToolState, ToolStateMachine

__all__ = ['OutcomeKind', 'ToolOutcome', 'ToolState', 'ToolStateMachine']
