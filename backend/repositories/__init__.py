"""
Repository pattern implementation for data access layer.
"""

from .base import BaseRepository
from .comment_repository import CommentRepository
from .report_repository import ReportRepository
from .user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "CommentRepository",
    "ReportRepository",
    "UserRepository",
]
