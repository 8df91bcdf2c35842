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

"""Chat session controller: message log, draft and request state."""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from .events import SessionEventEmitter, SessionEventType
from .messages import Message, MessageIdFactory, Origin

logger = logging.getLogger(__name__)

Job = Callable[[], None]
Runner = Callable[[Job], None]


@dataclass(frozen=True)
class QuickAction:
    """A pre-canned prompt offered before the first message."""
    key: str
    label: str
    prompt: str


QUICK_ACTIONS = [
    QuickAction("research", "Research", "Let's do some research!"),
    QuickAction("brainstorm", "Brainstorm", "Let's brainstorm ideas!"),
    QuickAction("analyze", "Analyze Data", "Let's analyze some data!"),
    QuickAction("image", "Create Image", "Let's create an image!"),
    QuickAction("code", "Code", "Let's write some code!"),
]


def find_quick_action(key: str) -> QuickAction:
    """Look up a quick action by key (case-insensitive) or list index."""
    wanted = key.strip().lower()
    for action in QUICK_ACTIONS:
        if action.key == wanted:
            return action
    if wanted.isdecimal() and int(wanted) < len(QUICK_ACTIONS):
        return QUICK_ACTIONS[int(wanted)]
    raise KeyError(key)


def thread_runner(job: Job) -> None:
    """Run a job on its own daemon thread."""
    threading.Thread(target=job, daemon=True).start()


class ChatSession:
    """Owns the session log and the busy/idle state.

    ``submit`` never waits for the backend: the user message is appended
    and the draft cleared before it returns, and the reply is appended later
    from the runner. There is no pending-request guard, so several requests
    may be in flight at once; replies are appended in the order they
    complete and ``busy`` stays true until the last one finishes.
    """

    def __init__(
        self,
        adapter,
        runner: Optional[Runner] = None,
        id_factory: Optional[MessageIdFactory] = None,
        events: Optional[SessionEventEmitter] = None,
        quick_actions_generate: bool = False,
    ):
        self.adapter = adapter
        self.runner = runner or thread_runner
        self.id_factory = id_factory or MessageIdFactory()
        self.events = events or SessionEventEmitter()
        self.quick_actions_generate = quick_actions_generate
        self._log: list[Message] = []
        self._draft = ""
        self._pending = 0
        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        # Reported BUSY_CHANGED values alternate and the last one matches busy
        self._busy_event_lock = threading.RLock()
        self._busy_reported = False
        self.events.emit(SessionEventType.SESSION_STARTED)

    @property
    def log(self) -> tuple[Message, ...]:
        with self._lock:
            return tuple(self._log)

    @property
    def busy(self) -> bool:
        with self._lock:
            return self._pending > 0

    @property
    def pending_count(self) -> int:
        with self._lock:
            return self._pending

    @property
    def draft(self) -> str:
        with self._lock:
            return self._draft

    def set_draft(self, text: str):
        with self._lock:
            if text == self._draft:
                return
            self._draft = text
        self.events.emit(SessionEventType.DRAFT_CHANGED, length=len(text))

    def submit(self, text: Optional[str] = None) -> Optional[Message]:
        """Send a user message and request a reply.

        Args:
            text: Message text; the current draft is used when omitted

        Returns:
            The appended user message, or None if the text was blank
        """
        with self._lock:
            if text is None:
                text = self._draft
            if not text.strip():
                return None
            message = self.id_factory.create(text, Origin.USER)
            self._log.append(message)
            self._draft = ""
            self._pending += 1
            log_length = len(self._log)

        self.events.emit(SessionEventType.MESSAGE_APPENDED, id=message.id, origin=message.origin.value, index=log_length - 1)
        self.events.emit(SessionEventType.DRAFT_CLEARED)
        self._report_busy()
        self.events.emit(SessionEventType.REQUEST_STARTED, message_id=message.id)
        logger.info("Submitted message %s (%d chars)", message.id, len(text))

        self.runner(lambda: self._complete_turn(message))
        return message

    def append_user_turn(self, text: str) -> Optional[Message]:
        """Append a user message without asking the backend for a reply."""
        if not text.strip():
            return None
        message = self.id_factory.create(text, Origin.USER)
        with self._lock:
            self._log.append(message)
            log_length = len(self._log)
        self.events.emit(SessionEventType.MESSAGE_APPENDED, id=message.id, origin=message.origin.value, index=log_length - 1)
        logger.info("Appended user turn %s without generation", message.id)
        return message

    def quick_action(self, key: str) -> Message:
        """Run a quick action by key or index.

        Raises:
            KeyError: If no quick action matches
        """
        action = find_quick_action(key)
        if self.quick_actions_generate:
            return self.submit(action.prompt)
        return self.append_user_turn(action.prompt)

    def wait_until_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until no request is outstanding; False on timeout."""
        with self._idle:
            return self._idle.wait_for(lambda: self._pending == 0, timeout=timeout)

    def _report_busy(self):
        with self._busy_event_lock:
            busy = self.busy
            if busy == self._busy_reported:
                return
            self._busy_reported = busy
            self.events.emit(SessionEventType.BUSY_CHANGED, busy=busy)

    def _complete_turn(self, user_message: Message):
        reply = None
        try:
            reply_text = self.adapter.generate(user_message.text)
            reply = self.id_factory.create(reply_text, Origin.ASSISTANT)
        finally:
            self._finish_request(user_message, reply)

    def _finish_request(self, user_message: Message, reply: Optional[Message]):
        with self._idle:
            if reply is not None:
                self._log.append(reply)
            self._pending -= 1
            log_length = len(self._log)
            if self._pending == 0:
                self._idle.notify_all()

        if reply is None:
            logger.error("No reply produced for message %s", user_message.id)
        else:
            self.events.emit(SessionEventType.MESSAGE_APPENDED, id=reply.id, origin=reply.origin.value, index=log_length - 1)
            logger.info("Reply %s appended for message %s", reply.id, user_message.id)
        self.events.emit(
            SessionEventType.REQUEST_COMPLETED,
            message_id=user_message.id,
            reply_id=reply.id if reply is not None else None,
        )
        self._report_busy()
