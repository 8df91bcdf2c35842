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

"""Main entry point for QuipChat."""

import argparse
import logging
import sys
from pathlib import Path

from .core.commands import handle_command
from .core.config import Config, load_config
from .core.events import SessionEventEmitter
from .core.gemini_client import GeminiChatClient
from .core.generation import GenerationAdapter
from .core.markup import MarkupParser
from .core.openai_client import OpenAIChatClient
from .core.provider_dispatcher import ProviderDispatcher
from .core.session import ChatSession
from .ui.app import run_ui
from .ui.render import render_message_ansi, render_plain

logger = logging.getLogger(__name__)

BATCH_REPLY_TIMEOUT = 600  # seconds to wait for one reply in batch mode


def parse_script_lines(lines: list[str]) -> list[str]:
    """Parse script lines, stripping comments and empty lines.

    Args:
        lines: Raw lines from script file

    Returns:
        List of executable lines
    """
    parsed = []
    for raw in lines:
        line = raw.strip()
        if not line or line.startswith('#'):
            continue
        parsed.append(line)
    return parsed


def build_provider_clients(config: Config) -> dict[str, object]:
    """Create one client per configured provider."""
    provider_clients = {}
    for p in config.providers:
        if p.type == "gemini":
            logger.debug("Initializing Gemini provider '%s'", p.id)
            provider_clients[p.id] = GeminiChatClient(config, p, timeout=config.timeout)
        elif p.type == "openai-compatible":
            logger.debug("Initializing OpenAI-compatible provider '%s'", p.id)
            provider_clients[p.id] = OpenAIChatClient(config, p, timeout=config.timeout)
        else:
            logger.warning("Provider type '%s' not supported (id=%s)", p.type, p.id)
    return provider_clients


def _print_messages(messages, parser: MarkupParser, use_ansi: bool):
    for message in messages:
        if use_ansi:
            print(render_message_ansi(message, parser))
        elif message.is_user:
            print(f"[User]: {message.text}")
        else:
            print(f"[Assistant]: {render_plain(message.text, parser)}")


def run_batch_lines(
    lines: list[str],
    session: ChatSession,
    config: Config,
    source_label: str = "<script>",
    use_ansi: bool = False,
) -> int:
    """Run script lines non-interactively.

    Commands run as typed; every other line is submitted and the script
    waits for its reply before moving on.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    script_lines = parse_script_lines(lines)
    if not script_lines:
        print(f"Error: No runnable lines in {source_label} (comments/empty only).", file=sys.stderr)
        return 1

    logger.info(f"Running script: {source_label} ({len(script_lines)} lines)")
    parser = MarkupParser(config.open_marker, config.close_marker)

    for i, line in enumerate(script_lines, 1):
        logger.debug(f"Executing line {i}: {line}")
        seen = len(session.log)
        if line.startswith('/'):
            result = handle_command(line, session)
            if result.message:
                print(f"[{i}] {result.message}")
            if result.should_exit:
                logger.info("Script requested exit via /exit command")
                return 0
        else:
            session.submit(line)

        if not session.wait_until_idle(BATCH_REPLY_TIMEOUT):
            print(f"[{i}] Error: timed out waiting for a reply", file=sys.stderr)
            return 1
        _print_messages(session.log[seen:], parser, use_ansi)

    logger.info("Script completed successfully")
    return 0


def run_batch(script_path: str, session: ChatSession, config: Config) -> int:
    """Run a script file in batch mode."""
    try:
        path = Path(script_path).expanduser()
        with open(path, 'r', encoding='utf-8') as f:
            lines = f.readlines()
    except FileNotFoundError:
        print(f"Error: File not found: {script_path}", file=sys.stderr)
        return 1
    except PermissionError:
        print(f"Error: Permission denied: {script_path}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error reading {script_path}: {e}", file=sys.stderr)
        return 1

    return run_batch_lines(lines, session, config, source_label=str(script_path), use_ansi=sys.stdout.isatty())


def main():
    """Main entry point for the application."""
    parser = argparse.ArgumentParser(
        description="QuipChat: a terminal chat client with a witty backend",
        prog="python -m quipchat"
    )
    parser.add_argument(
        '--run',
        metavar='PATH',
        help='Run a script file in batch mode (non-interactively) and exit'
    )
    parser.add_argument(
        '--log-events',
        action='store_true',
        help='Write every session event to the log'
    )
    args = parser.parse_args()

    dispatcher = None
    try:
        # Load configuration (this also initializes logging)
        config = load_config()

        logger.info("=== QuipChat starting ===")
        logger.info(f"Configuration loaded: default_provider={config.default_provider}")

        dispatcher = ProviderDispatcher(build_provider_clients(config))

        if config.default_provider not in dispatcher.clients:
            available = ", ".join(dispatcher.clients.keys())
            raise ValueError(f"Default provider '{config.default_provider}' not configured. Available: {available}")

        adapter = GenerationAdapter.from_config(config, dispatcher)
        session = ChatSession(
            adapter,
            events=SessionEventEmitter(log_events=args.log_events),
            quick_actions_generate=config.quick_actions_generate,
        )

        if args.run:
            sys.exit(run_batch(args.run, session, config))

        # If stdin is not a TTY and no --run provided, treat stdin as a script
        if not sys.stdin.isatty():
            stdin_lines = sys.stdin.read().splitlines()
            sys.exit(run_batch_lines(stdin_lines, session, config, source_label="<stdin>"))

        if config.log_file:
            print(f"Logging to: {config.log_file} (level: {config.log_level})")
        run_ui(session, config)

    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    except KeyboardInterrupt:
        print("\nExiting QuipChat...")
        logger.info("Application terminated by user (Ctrl+C)")
        sys.exit(0)

    finally:
        if dispatcher is not None:
            dispatcher.cleanup()


if __name__ == '__main__':
    main()
