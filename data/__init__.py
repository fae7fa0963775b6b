# Data layer for media planner

from .session_store import SessionStore

__all__ = ['SessionStore']
