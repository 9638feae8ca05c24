# File: autoscheduler/services/service_factory.py

from pathlib import Path
from typing import Optional, Union
from googleapiclient.discovery import Resource

from autoscheduler.core.config_manager import Config
from autoscheduler.llm.client import TaskTextParser
from autoscheduler.services.calendar_service import GoogleCalendarService
from autoscheduler.services.store import SchedulerStore
from autoscheduler.utils.logger import setup_logger

logger = setup_logger(__name__)


class ServiceFactory:
    """Factory for creating service instances."""

    @staticmethod
    def create_calendar_service(
        calendar_service: Resource,
        calendar_id: str = Config.CALENDAR_ID
    ) -> GoogleCalendarService:
        """
        Wrap an authenticated calendar API resource.

        Args:
            calendar_service: Authenticated calendar API resource
            calendar_id: Calendar to schedule into

        Returns:
            GoogleCalendarService instance
        """
        return GoogleCalendarService(calendar_service, calendar_id)

    @staticmethod
    def create_store(db_path: Optional[Union[str, Path]] = None) -> SchedulerStore:
        """Open the SQLite store, defaulting to Config.DB_PATH."""
        path = db_path or Config.DB_PATH
        logger.debug(f"Opening store at {path}")
        return SchedulerStore(path)

    @staticmethod
    def create_parser(api_key: Optional[str] = None) -> TaskTextParser:
        """Text parser; disabled when no Groq key is configured."""
        return TaskTextParser(api_key=api_key or Config.GROQ_API_KEY)
