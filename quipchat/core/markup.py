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

"""Inline emphasis markup used in assistant replies.

The backend marks emphasized spans with a pair of delimiters, ``{{`` and
``}}`` by default::

    >>> parse("a{{ b }}c")
    [Segment(content='a', emphasized=False), Segment(content='b', emphasized=True), Segment(content='c', emphasized=False)]

An opening marker without a matching close is kept as literal text, and a
span with nothing but whitespace inside is dropped.
"""

import re
from dataclasses import dataclass
from typing import Iterable, Iterator

DEFAULT_OPEN_MARKER = "{{"
DEFAULT_CLOSE_MARKER = "}}"


@dataclass(frozen=True)
class Segment:
    """A run of text that is either plain or emphasized."""
    content: str
    emphasized: bool = False


class MarkupParser:
    """Split text into plain and emphasized segments."""

    def __init__(self, open_marker: str = DEFAULT_OPEN_MARKER, close_marker: str = DEFAULT_CLOSE_MARKER):
        if not open_marker or not close_marker:
            raise ValueError("Markup markers must be non-empty strings")
        self.open_marker = open_marker
        self.close_marker = close_marker
        # Non-greedy interior, allowed to span lines; surrounding whitespace trimmed
        self._pattern = re.compile(
            rf"{re.escape(open_marker)}\s*(.*?)\s*{re.escape(close_marker)}",
            re.DOTALL,
        )

    def iter_segments(self, text: str) -> Iterator[Segment]:
        """Yield segments of ``text`` left to right."""
        last_index = 0
        for match in self._pattern.finditer(text):
            before = text[last_index:match.start()]
            if before:
                yield Segment(before, emphasized=False)
            inner = match.group(1)
            if inner:
                yield Segment(inner, emphasized=True)
            last_index = match.end()
        after = text[last_index:]
        if after:
            yield Segment(after, emphasized=False)

    def parse(self, text: str) -> list[Segment]:
        """Return the segments of ``text`` as a list."""
        return list(self.iter_segments(text))


_default_parser = MarkupParser()


def parse(text: str) -> list[Segment]:
    """Parse ``text`` with the default ``{{`` / ``}}`` markers."""
    return _default_parser.parse(text)


def plain_text(segments: Iterable[Segment]) -> str:
    """Join segment contents, dropping the emphasis."""
    return "".join(seg.content for seg in segments)
