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

"""Provider dispatcher for routing generation requests to the correct backend."""

import logging

logger = logging.getLogger(__name__)


class ProviderDispatcher:
    """Dispatch generation calls to provider-specific clients."""

    def __init__(self, clients: dict[str, object]):
        self.clients = clients

    def generate(self, provider_id: str, prompt: str) -> str:
        client = self.clients.get(provider_id)
        if client is None:
            raise ValueError(f"No client configured for provider '{provider_id}'")
        return client.generate(prompt)

    def cleanup(self):
        """Close every client's HTTP session, continuing past failures."""
        for provider_id, client in self.clients.items():
            if hasattr(client, "close"):
                try:
                    client.close()
                except Exception as e:
                    logger.warning("Error closing client '%s': %s", provider_id, e)
