"""
CLI helper functions and utilities.
"""

from .display import show_introspection, show_servers, show_skills, show_trash
from .errors import handle_errors, report

__all__ = [
    'show_introspection',
    'show_servers',
    'show_skills',
    'show_trash',
    'handle_errors',
    'report',
]
