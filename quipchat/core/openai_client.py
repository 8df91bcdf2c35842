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

"""OpenAI-compatible chat completions client."""

import logging

import requests

from .config import Config, ProviderConfig, resolve_api_key

logger = logging.getLogger(__name__)


class OpenAIChatClient:
    """Client for OpenAI-compatible chat completions."""

    def __init__(self, config: Config, provider: ProviderConfig, timeout: float):
        self.config = config
        self.provider = provider
        self.timeout = timeout  # fallback; config.timeout preferred
        self.session = requests.Session()
        headers = {
            "Content-Type": "application/json",
        }
        api_key = resolve_api_key(provider)
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        if provider.headers:
            headers.update(provider.headers)
        self.session.headers.update(headers)

    def generate(self, prompt: str) -> str:
        # Stateless: only the latest prompt is sent, never the history
        payload = {
            "model": self.provider.model,
            "messages": [{"role": "user", "content": prompt}],
            "stream": False,
        }
        url = f"{self.provider.api_url.rstrip('/')}/v1/chat/completions"

        resp = self._post(url, payload)
        try:
            data = resp.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise RuntimeError(f"Malformed chat completion response: {resp.text[:200]}") from e

        usage = data.get("usage") or {}
        logger.debug(
            "Completion usage: prompt=%s completion=%s",
            usage.get("prompt_tokens"),
            usage.get("completion_tokens"),
        )
        return content or ""

    def close(self):
        self.session.close()

    def _http_error_with_body(self, resp, exc: requests.HTTPError) -> RuntimeError:
        body = ""
        code = None
        detail_msg = None
        try:
            body = resp.text
            err = resp.json().get("error", {})
            detail_msg = err.get("message")
            code = err.get("code")
        except Exception:
            pass

        msg_parts = [f"HTTP error {resp.status_code}: {resp.reason}"]
        if detail_msg:
            msg_parts.append(f"Message: {detail_msg}")
        if code:
            msg_parts.append(f"Code: {code}")
        if body:
            msg_parts.append(f"Body: {body}")

        err = RuntimeError("; ".join(msg_parts))
        err.__cause__ = exc
        return err

    def _post(self, url: str, payload: dict) -> requests.Response:
        timeout = getattr(self.config, "timeout", None) or self.timeout
        resp = None
        try:
            resp = self.session.post(url, json=payload, timeout=timeout)
            resp.raise_for_status()
            return resp
        except requests.Timeout as e:
            raise TimeoutError(f"Request timed out after {timeout} seconds.") from e
        except requests.ConnectionError as e:
            raise ConnectionError(
                f"Failed to connect to provider at {self.provider.api_url}. "
                "Check your network or provider URL."
            ) from e
        except requests.HTTPError as e:
            raise self._http_error_with_body(resp, e)
