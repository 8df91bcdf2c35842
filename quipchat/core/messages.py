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

"""Message types for a QuipChat session."""

import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Optional


class Origin(Enum):
    """Who produced a message."""
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Message:
    """A single message in the session log."""
    id: str
    text: str  # Raw text; assistant markup is left unparsed
    origin: Origin
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def is_user(self) -> bool:
        return self.origin is Origin.USER


class MessageIdFactory:
    """Hand out millisecond-timestamp ids that never repeat within a session.

    Two messages created in the same tick (or after the clock stepped
    backwards) get ``last + 1`` so ids stay strictly increasing.
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self._clock = clock or time.time
        self._last = 0
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            candidate = int(self._clock() * 1000)
            if candidate <= self._last:
                candidate = self._last + 1
            self._last = candidate
            return str(candidate)

    def create(self, text: str, origin: Origin) -> Message:
        """Create a message with a fresh id."""
        return Message(id=self.next_id(), text=text, origin=origin)
