"""Services over the data store."""

from healthdb.services.analytics_service import AnalyticsService
from healthdb.services.store_service import RecordStore

__all__ = ["AnalyticsService", "RecordStore"]
