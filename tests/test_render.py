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

import unittest

from quipchat.core.markup import MarkupParser
from quipchat.core.messages import Message, Origin
from quipchat.ui.render import (
    BOLD,
    RESET,
    WELCOME_SUBTITLE,
    WELCOME_TITLE,
    build_transcript_text,
    render_message_ansi,
    render_plain,
    segments_to_ansi,
)


def msg(text, origin=Origin.ASSISTANT, mid="1"):
    return Message(id=mid, text=text, origin=origin)


class RenderTests(unittest.TestCase):
    def test_emphasized_segments_are_bold(self):
        rendered = segments_to_ansi(MarkupParser().parse("Oh {{wow}} really"))
        self.assertEqual(rendered, f"Oh {BOLD}wow{RESET} really")

    def test_emphasis_spanning_lines_is_bold_on_each_line(self):
        rendered = segments_to_ansi(MarkupParser().parse("See {{first\nsecond}} done"))
        self.assertEqual(rendered, f"See {BOLD}first{RESET}\n{BOLD}second{RESET} done")
        for line in rendered.split("\n"):
            self.assertIn(BOLD, line)

    def test_assistant_reply_markup_is_rendered(self):
        rendered = render_message_ansi(msg("So {{brave}}."))
        self.assertIn("[assistant]", rendered)
        self.assertIn(f"{BOLD}brave{RESET}", rendered)
        self.assertNotIn("{{", rendered)

    def test_user_text_is_shown_verbatim(self):
        rendered = render_message_ansi(msg("I typed {{this}}", origin=Origin.USER))
        self.assertIn("[you]", rendered)
        self.assertIn("I typed {{this}}", rendered)
        self.assertNotIn(BOLD, rendered)

    def test_custom_markers(self):
        parser = MarkupParser("**", "**")
        self.assertEqual(render_plain("a **b** {{c}}", parser), "a b {{c}}")

    def test_render_plain_strips_markers(self):
        self.assertEqual(render_plain("Nice {{ try }}, {{}}pal"), "Nice try, pal")

    def test_empty_log_shows_welcome(self):
        text = build_transcript_text([])
        self.assertIn(WELCOME_TITLE, text)
        self.assertIn(WELCOME_SUBTITLE, text)
        self.assertIn("/quick research", text)

    def test_transcript_lists_messages_in_order(self):
        log = [msg("hi", Origin.USER, "1"), msg("hello", Origin.ASSISTANT, "2")]
        lines = build_transcript_text(log).split("\n")
        self.assertEqual(len(lines), 2)
        self.assertTrue(lines[0].endswith("hi"))
        self.assertTrue(lines[1].endswith("hello"))
        self.assertNotIn(WELCOME_TITLE, "\n".join(lines))

    def test_busy_indicator(self):
        log = [msg("hi", Origin.USER)]
        self.assertNotIn("thinking", build_transcript_text(log))
        self.assertIn("thinking.", build_transcript_text(log, busy=True, thinking_dots=0))
        self.assertIn("thinking...", build_transcript_text(log, busy=True, thinking_dots=2))
        self.assertIn("thinking.", build_transcript_text(log, busy=True, thinking_dots=3))


if __name__ == "__main__":
    unittest.main()
