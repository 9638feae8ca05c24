# File: autoscheduler/services/calendar_service.py

import datetime
from typing import Any, Dict, List, Optional
from googleapiclient.discovery import Resource
from googleapiclient.errors import HttpError

from autoscheduler.core.config_manager import Config
from autoscheduler.models.calendar import CalendarEvent
from autoscheduler.models.common import ensure_aware
from autoscheduler.utils.logger import setup_logger

logger = setup_logger(__name__)


def _already_gone(error: Exception) -> bool:
    """404 and 410 mean the event no longer exists, which counts as deleted."""
    return (
        isinstance(error, HttpError)
        and getattr(error, 'resp', None) is not None
        and error.resp.status in (404, 410)
    )


class GoogleCalendarService:
    """Handles all Google Calendar operations."""

    def __init__(self, calendar_service: Resource, calendar_id: str = Config.CALENDAR_ID):
        """
        Initialize calendar service.

        Args:
            calendar_service: Authenticated Google Calendar API resource
            calendar_id: Calendar to read from and write to
        """
        self.service = calendar_service
        self.calendar_id = calendar_id
        self.generator_id = Config.GENERATOR_ID

    def list_events(
        self,
        time_min: datetime.datetime,
        time_max: datetime.datetime
    ) -> List[CalendarEvent]:
        """
        Fetch every timed or all-day event between two instants.

        Args:
            time_min: Lower bound (inclusive)
            time_max: Upper bound (exclusive)

        Returns:
            List of CalendarEvent objects, generated ones flagged

        Raises:
            ConnectionError: if the calendar cannot be read; scheduling
                against a partial calendar would double-book the user
        """
        logger.info(f"Fetching calendar events {time_min.isoformat()} -> {time_max.isoformat()}")

        typed_events: List[CalendarEvent] = []
        page_token = None

        try:
            while True:
                kwargs = {
                    "calendarId": self.calendar_id,
                    "timeMin": ensure_aware(time_min).isoformat(),
                    "timeMax": ensure_aware(time_max).isoformat(),
                    "singleEvents": True,
                    "orderBy": "startTime",
                    "maxResults": 250,
                }
                if page_token:
                    kwargs["pageToken"] = page_token

                events_result = self.service.events().list(**kwargs).execute()

                for event in events_result.get('items', []):
                    typed = self._to_calendar_event(event)
                    if typed:
                        typed_events.append(typed)

                page_token = events_result.get("nextPageToken")
                if not page_token:
                    break
        except HttpError as e:
            logger.error(f"Error fetching calendar events: {e}", exc_info=True)
            raise ConnectionError(f"Could not read calendar events: {e}") from e

        logger.info(f"Found {len(typed_events)} calendar events")
        return typed_events

    def _to_calendar_event(self, event: Dict[str, Any]) -> Optional[CalendarEvent]:
        """Convert one API item; cancelled or malformed items yield None."""
        if event.get('status') == 'cancelled':
            return None

        extended_props = event.get('extendedProperties', {}).get('private', {})
        try:
            # Prefer dateTime (full timestamp) over date (all-day)
            start_dt = self._parse_gc_time(event['start'].get('dateTime', event['start'].get('date')))
            end_dt = self._parse_gc_time(event['end'].get('dateTime', event['end'].get('date')))

            if not start_dt or not end_dt:
                logger.warning(f"No start or end time for event {event.get('summary')}")
                return None

            return CalendarEvent(
                event_id=event.get('id'),
                summary=event.get('summary', 'No Title'),
                start=start_dt,
                end=end_dt,
                description=event.get('description'),
                time_zone=event['start'].get('timeZone'),
                is_generated=extended_props.get('sourceId') == self.generator_id,
            )
        except (KeyError, ValueError) as e:
            logger.warning(f"Could not parse event data for {event.get('summary')}: {e}")
            return None

    def _parse_gc_time(self, time_str: Optional[str]) -> Optional[datetime.datetime]:
        """Helper to safely parse Google Calendar date/dateTime strings."""
        if not time_str:
            return None
        try:
            # Full ISO format with time and timezone
            return ensure_aware(datetime.datetime.fromisoformat(time_str.replace('Z', '+00:00')))
        except ValueError:
            try:
                # Date-only format (for all-day events, treat as midnight UTC)
                date_obj = datetime.datetime.strptime(time_str, "%Y-%m-%d").date()
                return datetime.datetime.combine(date_obj, datetime.time.min).replace(
                    tzinfo=datetime.timezone.utc
                )
            except ValueError:
                return None

    def _time_body(self, moment: datetime.datetime, time_zone: Optional[str]) -> Dict[str, str]:
        body = {'dateTime': ensure_aware(moment).isoformat()}
        if time_zone:
            body['timeZone'] = time_zone
        return body

    def create_event(
        self,
        summary: str,
        start: datetime.datetime,
        end: datetime.datetime,
        time_zone: Optional[str] = None,
        description: Optional[str] = None,
        generated: bool = True
    ) -> Optional[str]:
        """
        Create one calendar event.

        Args:
            summary: Event title
            start: Start instant
            end: End instant
            time_zone: Optional label stored with the event
            description: Optional description (carries the AI marker)
            generated: Tag the event as created by this application

        Returns:
            The new event id, or None if the API call failed
        """
        event: Dict[str, Any] = {
            'summary': summary,
            'start': self._time_body(start, time_zone),
            'end': self._time_body(end, time_zone),
        }
        if description:
            event['description'] = description
        if generated:
            event['extendedProperties'] = {
                'private': {
                    'sourceId': self.generator_id,
                }
            }

        try:
            created = self.service.events().insert(
                calendarId=self.calendar_id,
                body=event
            ).execute()
            event_id = created.get('id')
            logger.debug(f"Created event {event_id} for '{summary}'")
            return event_id
        except Exception as e:
            logger.error(f"Failed to create event '{summary}': {e}", exc_info=True)
            return None

    def update_event(
        self,
        event_id: str,
        summary: Optional[str] = None,
        start: Optional[datetime.datetime] = None,
        end: Optional[datetime.datetime] = None,
        time_zone: Optional[str] = None,
        description: Optional[str] = None
    ) -> bool:
        """
        Patch the given fields of an existing event.

        Returns:
            True if the API accepted the change
        """
        body: Dict[str, Any] = {}
        if summary is not None:
            body['summary'] = summary
        if description is not None:
            body['description'] = description
        if start is not None:
            body['start'] = self._time_body(start, time_zone)
        if end is not None:
            body['end'] = self._time_body(end, time_zone)

        if not body:
            return True

        try:
            self.service.events().patch(
                calendarId=self.calendar_id,
                eventId=event_id,
                body=body
            ).execute()
            logger.debug(f"Updated event {event_id}")
            return True
        except Exception as e:
            logger.error(f"Failed to update event {event_id}: {e}", exc_info=True)
            return False

    def delete_event(self, event_id: str) -> bool:
        """Delete a single event. Returns True on success."""
        try:
            self.service.events().delete(
                calendarId=self.calendar_id,
                eventId=event_id
            ).execute()
            logger.debug(f"Deleted event {event_id}")
            return True
        except HttpError as e:
            if _already_gone(e):
                logger.info(f"Event {event_id} was already deleted")
                return True
            logger.error(f"Failed to delete event {event_id}: {e}", exc_info=True)
            return False
        except Exception as e:
            logger.error(f"Failed to delete event {event_id}: {e}", exc_info=True)
            return False

    def delete_events(self, event_ids: List[str]) -> int:
        """
        Delete several events in one batch request.

        Args:
            event_ids: Events to delete

        Returns:
            Number of events deleted
        """
        event_ids = [e for e in event_ids if e]
        if not event_ids:
            return 0

        logger.info(f"Deleting {len(event_ids)} calendar events")

        batch = self.service.new_batch_http_request()
        deleted_count = 0

        def callback(request_id, response, exception):
            nonlocal deleted_count
            if exception is None:
                deleted_count += 1
            elif _already_gone(exception):
                logger.info(f"Event {request_id} was already deleted")
                deleted_count += 1
            else:
                logger.warning(f"Failed to delete event {request_id}: {exception}")

        for event_id in event_ids:
            batch.add(
                self.service.events().delete(
                    calendarId=self.calendar_id,
                    eventId=event_id
                ),
                callback=callback
            )

        try:
            batch.execute()
        except Exception as e:
            logger.error(f"Batch deletion failed: {e}", exc_info=True)

        logger.info(f"Successfully deleted {deleted_count} events")
        return deleted_count
