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

"""Google Gemini generateContent client."""

import logging

import requests

from .config import Config, ProviderConfig, resolve_api_key

logger = logging.getLogger(__name__)


class GeminiChatClient:
    """Client for the Gemini REST API (one prompt in, one text out)."""

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
            headers["x-goog-api-key"] = api_key
        else:
            logger.warning("No API key configured for provider '%s'", provider.id)
        if provider.headers:
            headers.update(provider.headers)
        self.session.headers.update(headers)

    @property
    def url(self) -> str:
        return f"{self.provider.api_url.rstrip('/')}/v1beta/models/{self.provider.model}:generateContent"

    def generate(self, prompt: str) -> str:
        payload = {
            "contents": [
                {"role": "user", "parts": [{"text": prompt}]}
            ]
        }
        resp = self._post(payload)
        try:
            data = resp.json()
        except ValueError as e:
            raise RuntimeError(f"Gemini returned a non-JSON body: {resp.text[:200]}") from e
        return self._extract_text(data)

    def close(self):
        self.session.close()

    def _extract_text(self, data: dict) -> str:
        if not isinstance(data, dict):
            raise RuntimeError("Gemini response body is not a JSON object")
        candidates = data.get("candidates") or []
        if not candidates:
            feedback = data.get("promptFeedback") or {}
            block_reason = feedback.get("blockReason")
            if block_reason:
                raise RuntimeError(f"Prompt blocked by Gemini: {block_reason}")
            raise RuntimeError("Gemini response contained no candidates")

        candidate = candidates[0]
        parts = (candidate.get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))
        if not text:
            reason = candidate.get("finishReason", "unknown")
            raise RuntimeError(f"Gemini returned an empty reply (finishReason: {reason})")

        usage = data.get("usageMetadata") or {}
        logger.debug(
            "Gemini usage: prompt=%s candidates=%s",
            usage.get("promptTokenCount"),
            usage.get("candidatesTokenCount"),
        )
        return text

    def _http_error_with_body(self, resp, exc: requests.HTTPError) -> RuntimeError:
        body = ""
        detail_msg = None
        status = None
        try:
            body = resp.text
            err = resp.json().get("error", {})
            detail_msg = err.get("message")
            status = err.get("status")
        except Exception:
            pass

        msg_parts = [f"HTTP error {resp.status_code}: {resp.reason}"]
        if detail_msg:
            msg_parts.append(f"Message: {detail_msg}")
        if status:
            msg_parts.append(f"Status: {status}")
        if body and not detail_msg:
            msg_parts.append(f"Body: {body}")

        err = RuntimeError("; ".join(msg_parts))
        err.__cause__ = exc
        return err

    def _post(self, payload: dict) -> requests.Response:
        timeout = getattr(self.config, "timeout", None) or self.timeout
        resp = None
        try:
            resp = self.session.post(self.url, json=payload, timeout=timeout)
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
