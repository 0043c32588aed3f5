"""
Services layer for business logic.

This package contains service modules that encapsulate business logic
separate from the API routes.
"""

from .feed_service import FeedService
from .enrichment_service import EnrichmentService
from .report_service import ReportService
from .comment_service import CommentService
from .user_service import UserService
from .geocoding_service import GeocodingService

__all__ = [
    "FeedService",
    "EnrichmentService",
    "ReportService",
    "CommentService",
    "UserService",
    "GeocodingService",
]
