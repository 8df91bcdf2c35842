# Copyright 2024 QuipChat contributors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Session event system used by the UI and by tests."""

import json
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class SessionEventType(Enum):
    """Things that happen to a chat session."""
    SESSION_STARTED = auto()

    # Log
    MESSAGE_APPENDED = auto()

    # Draft input
    DRAFT_CHANGED = auto()
    DRAFT_CLEARED = auto()

    # Generation requests
    BUSY_CHANGED = auto()
    REQUEST_STARTED = auto()
    REQUEST_COMPLETED = auto()


@dataclass
class SessionEvent:
    """A single session event with timestamp and data."""
    type: SessionEventType
    timestamp: str
    data: dict = field(default_factory=dict)

    def to_log_line(self) -> str:
        """Format as a parseable log line."""
        data_json = json.dumps(self.data, default=str)
        return f"SESSION_EVENT|{self.timestamp}|{self.type.name}|{data_json}"

    @classmethod
    def from_log_line(cls, line: str) -> Optional['SessionEvent']:
        """Parse from log line format."""
        if not line.startswith("SESSION_EVENT|"):
            return None
        try:
            parts = line.split("|", 3)
            if len(parts) != 4:
                return None
            _, timestamp, event_name, data_json = parts
            return cls(
                type=SessionEventType[event_name],
                timestamp=timestamp,
                data=json.loads(data_json)
            )
        except (KeyError, json.JSONDecodeError):
            return None


class SessionEventEmitter:
    """Emits and tracks session events."""

    def __init__(self, log_events: bool = False):
        self._listeners: list[Callable[[SessionEvent], None]] = []
        self._event_log: list[SessionEvent] = []
        self._log_events = log_events
        self._max_log_size = 1000  # Prevent unbounded growth
        self._lock = threading.Lock()

    def add_listener(self, callback: Callable[[SessionEvent], None]):
        """Add an event listener."""
        with self._lock:
            self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[SessionEvent], None]):
        """Remove an event listener."""
        with self._lock:
            if callback in self._listeners:
                self._listeners.remove(callback)

    def emit(self, event_type: SessionEventType, **data):
        """Emit a session event."""
        event = SessionEvent(
            type=event_type,
            timestamp=datetime.now().isoformat(),
            data=data
        )

        with self._lock:
            self._event_log.append(event)
            if len(self._event_log) > self._max_log_size:
                self._event_log = self._event_log[-self._max_log_size:]
            listeners = list(self._listeners)

        if self._log_events:
            logger.info(event.to_log_line())

        for listener in listeners:
            try:
                listener(event)
            except Exception as e:
                logger.debug(f"Event listener error: {e}")

    def get_events(
        self,
        event_type: Optional[SessionEventType] = None,
        since: Optional[str] = None
    ) -> list[SessionEvent]:
        """Get events, optionally filtered by type or timestamp."""
        with self._lock:
            events = list(self._event_log)
        if event_type is not None:
            events = [e for e in events if e.type == event_type]
        if since is not None:
            events = [e for e in events if e.timestamp > since]
        return events

    def get_last_event(self, event_type: Optional[SessionEventType] = None) -> Optional[SessionEvent]:
        """Get the most recent event of a type."""
        events = self.get_events(event_type)
        return events[-1] if events else None

    def clear(self):
        """Clear the event log."""
        with self._lock:
            self._event_log.clear()

    def wait_for_event(
        self,
        event_type: SessionEventType,
        timeout: float = 5.0,
        predicate: Optional[Callable[[SessionEvent], bool]] = None
    ) -> Optional[SessionEvent]:
        """Wait for the next matching event (for use in tests and batch mode)."""
        result = [None]
        found = threading.Event()

        def listener(event: SessionEvent):
            if event.type == event_type:
                if predicate is None or predicate(event):
                    result[0] = event
                    found.set()

        self.add_listener(listener)
        try:
            found.wait(timeout)
            return result[0]
        finally:
            self.remove_listener(listener)


def parse_session_events_from_log(log_content: str) -> list[SessionEvent]:
    """Parse session events from log file content."""
    events = []
    for line in log_content.splitlines():
        start = line.find("SESSION_EVENT|")
        if start >= 0:
            event = SessionEvent.from_log_line(line[start:])
            if event:
                events.append(event)
    return events
