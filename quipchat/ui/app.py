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

"""Terminal UI for QuipChat using prompt_toolkit."""

import logging
import threading
import time
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from prompt_toolkit.input import Input
    from prompt_toolkit.output import Output

from prompt_toolkit import Application
from prompt_toolkit.buffer import Buffer
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.document import Document
from prompt_toolkit.formatted_text import ANSI, to_formatted_text
from prompt_toolkit.history import InMemoryHistory
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.layout import FormattedTextControl, HSplit, Layout, VSplit, Window
from prompt_toolkit.layout.controls import BufferControl
from prompt_toolkit.lexers import Lexer

from ..core.commands import COMMAND_REGISTRY, handle_command
from ..core.config import Config
from ..core.events import SessionEvent, SessionEventType
from ..core.markup import MarkupParser
from ..core.session import ChatSession
from .render import build_transcript_text

logger = logging.getLogger(__name__)


class AnsiLexer(Lexer):
    """Lexer that interprets ANSI color codes in buffer text."""

    def lex_document(self, document):
        lines = document.text.split('\n')

        def get_line(lineno):
            if lineno < len(lines):
                return to_formatted_text(ANSI(lines[lineno]))
            return []

        return get_line


class QuipChatUI:
    """Terminal user interface driven by a ChatSession."""

    def __init__(
        self,
        session: ChatSession,
        config: Config,
        input: 'Input | None' = None,
        output: 'Output | None' = None,
    ):
        """Initialize the UI.

        Args:
            session: Chat session to display and drive
            config: Application configuration
            input: Optional custom input (for headless testing)
            output: Optional custom output (for headless testing)
        """
        self.session = session
        self.config = config
        self.parser = MarkupParser(config.open_marker, config.close_marker)
        self.thinking_dots = 0  # Animation counter for thinking indicator
        self.notice: Optional[str] = None  # Last command output, shown above the status bar
        self._animating = False
        self._animation_lock = threading.Lock()

        command_completer = WordCompleter(
            [f"/{name}" for name in COMMAND_REGISTRY],
            ignore_case=True,
            sentence=True
        )
        self.input_buffer = Buffer(
            multiline=True,
            history=InMemoryHistory(),
            completer=command_completer,
            on_text_changed=self._on_input_changed,
        )
        self.conversation_buffer = Buffer(read_only=True)

        self.layout = self._create_layout()
        self.kb = self._create_key_bindings()

        app_kwargs = {
            'layout': self.layout,
            'key_bindings': self.kb,
            'full_screen': True,
            'mouse_support': False,  # Keep terminal-native mouse selection
        }
        if input is not None:
            app_kwargs['input'] = input
        if output is not None:
            app_kwargs['output'] = output
        self.app = Application(**app_kwargs)

        self.session.events.add_listener(self._on_session_event)
        self.update_conversation_display()

    def _create_layout(self) -> Layout:  # pragma: no cover - UI layout wiring
        self.conversation_window = Window(
            content=BufferControl(buffer=self.conversation_buffer, lexer=AnsiLexer(), focusable=True),
            wrap_lines=True
        )
        notice_window = Window(
            content=FormattedTextControl(text=lambda: self.notice or ""),
            height=lambda: 0 if not self.notice else self.notice.count('\n') + 1,
            wrap_lines=True
        )
        status_window = Window(
            content=FormattedTextControl(text=self._get_status_bar),
            height=1
        )
        separator_window = Window(char='─', height=1)
        prompt_window = Window(
            content=FormattedTextControl(text="> "),
            width=2,
            dont_extend_width=True
        )
        self.input_window = Window(
            content=BufferControl(buffer=self.input_buffer),
            wrap_lines=True,
            height=lambda: min(5, max(1, self.input_buffer.text.count('\n') + 1))
        )

        root_container = HSplit([
            self.conversation_window,
            notice_window,
            status_window,
            separator_window,
            VSplit([prompt_window, self.input_window]),
        ])
        return Layout(root_container, focused_element=self.input_window)

    def _create_key_bindings(self) -> KeyBindings:  # pragma: no cover - interactive key handling
        kb = KeyBindings()

        @kb.add('escape', 'enter')  # Alt+Enter
        def handle_newline_insert(event):
            """Insert a newline without sending the message."""
            self.input_buffer.insert_text('\n')

        @kb.add('enter')
        def handle_enter(event):
            """Send the draft or run a command."""
            if self.handle_input(self.input_buffer.text):
                event.app.exit()

        @kb.add('tab')
        def handle_tab(event):
            """Switch focus between transcript and input."""
            if event.app.layout.has_focus(self.input_window):
                event.app.layout.focus(self.conversation_window)
            else:
                event.app.layout.focus(self.input_window)

        @kb.add('c-c')
        @kb.add('c-d')
        def handle_exit(event):
            """Handle Ctrl+C or Ctrl+D to exit."""
            event.app.exit()

        return kb

    def _get_status_bar(self):
        """Status bar with provider, message count and busy indicator."""
        provider = self.config.get_provider(self.config.default_provider)
        thinking_indicator = ""
        if self.session.busy:
            dots = "." * ((self.thinking_dots % 3) + 1)
            pending = self.session.pending_count
            thinking_indicator = f" | Thinking{dots}" + (f" ({pending} pending)" if pending > 1 else "")
        text = f"{provider.id}/{provider.model} | {len(self.session.log)} messages{thinking_indicator}"
        return [('reverse', text)]

    def handle_input(self, raw_text: str) -> bool:
        """Process the input box contents; return True when the app should exit."""
        text = raw_text.strip()
        if text.startswith('/'):
            self.input_buffer.reset()
            result = handle_command(text, self.session)
            self.notice = result.message
            return result.should_exit

        if len(raw_text) > self.config.max_input_length:
            raw_text = raw_text[:self.config.max_input_length]
        self.notice = None
        self.session.set_draft(raw_text)
        if self.session.submit() is not None:
            self.input_buffer.reset()
        return False

    def _on_input_changed(self, buffer: Buffer):
        if not buffer.text.lstrip().startswith('/'):
            self.session.set_draft(buffer.text)

    def _on_session_event(self, event: SessionEvent):
        if event.type in (SessionEventType.MESSAGE_APPENDED, SessionEventType.BUSY_CHANGED):
            if self.session.busy:
                self._start_thinking_animation()
            self.update_conversation_display()

    def _start_thinking_animation(self):  # pragma: no cover - threaded UI flow
        with self._animation_lock:
            if self._animating:
                return
            self._animating = True
            self.thinking_dots = 0

        def animate_thinking():
            while True:
                with self._animation_lock:
                    if not self.session.busy:
                        self._animating = False
                        break
                    self.thinking_dots += 1
                self.update_conversation_display()
                time.sleep(0.5)

        threading.Thread(target=animate_thinking, daemon=True).start()

    def update_conversation_display(self):
        """Rebuild the transcript and scroll to the bottom."""
        text = build_transcript_text(
            self.session.log,
            parser=self.parser,
            busy=self.session.busy,
            thinking_dots=self.thinking_dots,
        )
        self.conversation_buffer.set_document(
            Document(text=text, cursor_position=len(text)),
            bypass_readonly=True
        )
        self.app.invalidate()

    def run(self):
        self.app.run()


def run_ui(session: ChatSession, config: Config):  # pragma: no cover - interactive UI loop
    """Run the terminal UI."""
    ui = QuipChatUI(session, config)
    ui.run()
