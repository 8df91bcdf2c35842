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

"""Turn the session log into display text.

Markup is parsed here, at render time, never when a message is stored.
"""

from typing import Iterable, Optional

from ..core.markup import MarkupParser, Segment, plain_text
from ..core.messages import Message, Origin
from ..core.session import QUICK_ACTIONS

# ANSI color codes
BOLD = '\033[1m'
GRAY = '\033[90m'
CYAN = '\033[96m'
GREEN = '\033[92m'
RESET = '\033[0m'

WELCOME_TITLE = "Welcome to Chat!"
WELCOME_SUBTITLE = "How can I help you today?"

_default_parser = MarkupParser()


def segments_to_ansi(segments: Iterable[Segment]) -> str:
    """Render segments with emphasized runs in bold.

    The transcript lexer styles each line on its own, so bold is closed and
    reopened around every newline inside an emphasized run.
    """
    parts = []
    for seg in segments:
        if seg.emphasized:
            content = seg.content.replace("\n", f"{RESET}\n{BOLD}")
            parts.append(f"{BOLD}{content}{RESET}")
        else:
            parts.append(seg.content)
    return "".join(parts)


def render_message_ansi(message: Message, parser: Optional[MarkupParser] = None) -> str:
    """Render one message as a prefixed, colored transcript entry.

    User text is shown verbatim; only assistant replies carry markup.
    """
    if message.origin is Origin.USER:
        return f"{CYAN}[you]{RESET} {message.text}"
    parser = parser or _default_parser
    return f"{GREEN}[assistant]{RESET} {segments_to_ansi(parser.iter_segments(message.text))}"


def render_plain(text: str, parser: Optional[MarkupParser] = None) -> str:
    """Strip markup delimiters, keeping the text."""
    parser = parser or _default_parser
    return plain_text(parser.iter_segments(text))


def welcome_text() -> str:
    lines = [
        f"{BOLD}{WELCOME_TITLE}{RESET}",
        f"{GRAY}{WELCOME_SUBTITLE}{RESET}",
        "",
    ]
    for i, action in enumerate(QUICK_ACTIONS):
        lines.append(f"  {GRAY}[{i}]{RESET} {action.label:<14} {GRAY}/quick {action.key}{RESET}")
    return "\n".join(lines)


def build_transcript_text(
    log: Iterable[Message],
    parser: Optional[MarkupParser] = None,
    busy: bool = False,
    thinking_dots: int = 0,
) -> str:
    """Build the full transcript with ANSI color codes.

    An empty log shows the welcome screen; a busy session gets a trailing
    thinking indicator.
    """
    log = list(log)
    if not log:
        return welcome_text()

    lines = [render_message_ansi(msg, parser) for msg in log]
    if busy:
        dots = "." * ((thinking_dots % 3) + 1)
        lines.append(f"{GRAY}[assistant] thinking{dots}{RESET}")
    return "\n".join(lines)
