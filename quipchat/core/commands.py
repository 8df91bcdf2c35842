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

"""Slash command parsing and handling for QuipChat."""

from dataclasses import dataclass
from typing import Optional

from .session import QUICK_ACTIONS, ChatSession


# Command registry with metadata for help system
COMMAND_REGISTRY = {
    "actions": {
        "usage": "/actions",
        "description": "List the quick actions.",
        "examples": ["/actions"],
    },
    "quick": {
        "usage": "/quick <index|key>",
        "description": "Post a quick-action prompt as your message.",
        "examples": ["/quick 0", "/quick brainstorm"],
    },
    "help": {
        "usage": "/help [command]",
        "description": "Show help for all commands or one command.",
        "examples": ["/help", "/help quick"],
    },
    "exit": {
        "usage": "/exit",
        "description": "Exit QuipChat.",
        "examples": ["/exit"],
    },
}


@dataclass
class CommandResult:
    """Result of a command execution."""
    message: Optional[str] = None
    should_exit: bool = False


def format_help_all() -> str:
    """Format help for all commands."""
    lines = ["Commands:"]
    for _, info in sorted(COMMAND_REGISTRY.items()):
        lines.append(f"  {info['usage']:<20} {info['description']}")
    lines.append("Use /help <command> for details.")
    return "\n".join(lines)


def format_help_command(cmd: str) -> Optional[str]:
    """Format detailed help for a specific command."""
    info = COMMAND_REGISTRY.get(cmd)
    if not info:
        return None

    lines = [
        info['usage'],
        f"  {info['description']}",
        "  Examples:",
    ]
    for ex in info["examples"]:
        lines.append(f"    {ex}")
    return "\n".join(lines)


def format_quick_actions() -> str:
    lines = ["Quick actions:"]
    for i, action in enumerate(QUICK_ACTIONS):
        lines.append(f"  [{i}] {action.label:<14} /quick {action.key}")
    return "\n".join(lines)


def handle_command(line: str, session: ChatSession) -> CommandResult:
    """Parse and handle a command.

    Args:
        line: Command line (starting with /)
        session: Current chat session

    Returns:
        CommandResult with execution result
    """
    line = line.strip()
    if not line.startswith('/'):
        return CommandResult(message="Commands must start with /")

    parts = line[1:].split(maxsplit=1)
    if not parts:
        return CommandResult(message="Empty command")

    command = parts[0].lower()
    args = parts[1].strip() if len(parts) > 1 else ""

    if command == 'exit':
        return CommandResult(message="Exiting QuipChat...", should_exit=True)

    elif command == 'help':
        if not args:
            return CommandResult(message=format_help_all())
        cmd_help = format_help_command(args.lstrip('/').lower())
        if cmd_help:
            return CommandResult(message=cmd_help)
        return CommandResult(message=f"No such command: {args}")

    elif command == 'actions':
        return CommandResult(message=format_quick_actions())

    elif command == 'quick':
        if not args:
            return CommandResult(message="Usage: /quick <index|key>")
        try:
            session.quick_action(args)
        except KeyError:
            return CommandResult(message=f"Unknown quick action: {args}. Use /actions to list them.")
        return CommandResult()

    return CommandResult(message=f"Unknown command: /{command}. Type /help for a list of commands.")
