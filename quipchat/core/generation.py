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

"""Single-shot generation with a fixed instruction and a fallback reply."""

import logging
import time

from .config import DEFAULT_FALLBACK_TEXT, DEFAULT_SYSTEM_INSTRUCTION, Config

logger = logging.getLogger(__name__)


def _preview(text: str, limit: int = 80) -> str:
    text = text.replace("\n", " ")
    return text if len(text) <= limit else text[:limit] + "..."


class GenerationAdapter:
    """Turn a user utterance into a reply, never raising.

    Each call sends exactly one request: the instruction followed by the
    user's literal text. Any failure is logged and replaced by
    ``fallback_text``, so callers cannot tell a failed request from a real
    reply except by its content.
    """

    def __init__(
        self,
        dispatcher,
        provider_id: str,
        system_instruction: str = DEFAULT_SYSTEM_INSTRUCTION,
        fallback_text: str = DEFAULT_FALLBACK_TEXT,
    ):
        self.dispatcher = dispatcher
        self.provider_id = provider_id
        self.system_instruction = system_instruction
        self.fallback_text = fallback_text

    @classmethod
    def from_config(cls, config: Config, dispatcher) -> 'GenerationAdapter':
        return cls(
            dispatcher,
            config.default_provider,
            system_instruction=config.system_instruction,
            fallback_text=config.fallback_text,
        )

    def build_prompt(self, text: str) -> str:
        if not self.system_instruction:
            return text
        return f"{self.system_instruction} {text}"

    def generate(self, text: str) -> str:
        prompt = self.build_prompt(text)
        logger.debug("Generating reply via '%s' for: %s", self.provider_id, _preview(text))
        start = time.monotonic()
        try:
            reply = self.dispatcher.generate(self.provider_id, prompt)
        except Exception:
            logger.exception("Generation via '%s' failed; using fallback reply", self.provider_id)
            return self.fallback_text

        if not isinstance(reply, str) or not reply.strip():
            logger.warning("Generation via '%s' returned an empty reply; using fallback", self.provider_id)
            return self.fallback_text

        logger.info(
            "Generated %d chars via '%s' in %.2fs",
            len(reply), self.provider_id, time.monotonic() - start,
        )
        return reply
