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

from quipchat.core.commands import (
    COMMAND_REGISTRY,
    format_help_all,
    format_help_command,
    handle_command,
)
from quipchat.core.test_harness import ManualRunner, make_test_session


class HandleCommandTests(unittest.TestCase):
    def setUp(self):
        self.runner = ManualRunner()
        self.session, self.client = make_test_session(runner=self.runner)

    def test_exit(self):
        result = handle_command("/exit", self.session)
        self.assertTrue(result.should_exit)

    def test_help_lists_every_command(self):
        message = handle_command("/help", self.session).message
        for info in COMMAND_REGISTRY.values():
            self.assertIn(info["usage"], message)
        self.assertEqual(message, format_help_all())

    def test_help_for_one_command(self):
        message = handle_command("/help /quick", self.session).message
        self.assertEqual(message, format_help_command("quick"))
        self.assertIn("/quick brainstorm", message)

    def test_help_unknown_command(self):
        result = handle_command("/help nope", self.session)
        self.assertEqual(result.message, "No such command: nope")
        self.assertIsNone(format_help_command("nope"))

    def test_actions_lists_quick_actions(self):
        message = handle_command("/actions", self.session).message
        self.assertIn("[0] Research", message)
        self.assertIn("/quick code", message)

    def test_quick_appends_user_turn(self):
        result = handle_command("/quick 1", self.session)
        self.assertIsNone(result.message)
        self.assertFalse(result.should_exit)
        self.assertEqual([m.text for m in self.session.log], ["Let's brainstorm ideas!"])
        self.assertEqual(self.runner.pending, 0)

    def test_quick_by_key_is_case_insensitive(self):
        handle_command("/QUICK Analyze", self.session)
        self.assertEqual(self.session.log[0].text, "Let's analyze some data!")

    def test_quick_errors(self):
        self.assertEqual(handle_command("/quick", self.session).message, "Usage: /quick <index|key>")
        self.assertIn("Unknown quick action: 9", handle_command("/quick 9", self.session).message)
        self.assertEqual(self.session.log, ())

    def test_quick_with_non_ascii_digit(self):
        result = handle_command("/quick ²", self.session)
        self.assertEqual(result.message, "Unknown quick action: ². Use /actions to list them.")
        self.assertEqual(self.session.log, ())

    def test_unknown_and_malformed(self):
        self.assertIn("Unknown command: /frobnicate", handle_command("/frobnicate", self.session).message)
        self.assertEqual(handle_command("/", self.session).message, "Empty command")
        self.assertEqual(handle_command("hello", self.session).message, "Commands must start with /")
        self.assertEqual(self.session.log, ())


if __name__ == "__main__":
    unittest.main()
