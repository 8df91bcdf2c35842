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

import logging
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from quipchat.core.config import (
    DEFAULT_FALLBACK_TEXT,
    DEFAULT_MAX_INPUT_LENGTH,
    DEFAULT_SYSTEM_INSTRUCTION,
    GEMINI_API_URL,
    GEMINI_DEFAULT_MODEL,
    ProviderConfig,
    load_config,
    parse_config,
    resolve_api_key,
)


class ParseConfigTests(unittest.TestCase):
    def test_empty_config_uses_gemini_defaults(self):
        cfg = parse_config({})
        self.assertEqual(cfg.default_provider, "gemini")
        provider = cfg.get_provider("gemini")
        self.assertEqual(provider.api_url, GEMINI_API_URL)
        self.assertEqual(provider.model, GEMINI_DEFAULT_MODEL)
        self.assertEqual(cfg.system_instruction, DEFAULT_SYSTEM_INSTRUCTION)
        self.assertEqual(cfg.fallback_text, DEFAULT_FALLBACK_TEXT)
        self.assertEqual(cfg.timeout, 60)
        self.assertEqual(cfg.max_input_length, DEFAULT_MAX_INPUT_LENGTH)
        self.assertEqual((cfg.open_marker, cfg.close_marker), ("{{", "}}"))
        self.assertFalse(cfg.quick_actions_generate)

    def test_general_and_markup_sections(self):
        cfg = parse_config({
            "general": {
                "system_instruction": "Be dry:",
                "fallback_text": "Nope.",
                "timeout": 5,
                "max_input_length": 280,
                "quick_actions_generate": True,
                "log_level": "debug",
            },
            "markup": {"open": "**", "close": "**"},
        })
        self.assertEqual(cfg.system_instruction, "Be dry:")
        self.assertEqual(cfg.fallback_text, "Nope.")
        self.assertEqual(cfg.timeout, 5.0)
        self.assertEqual(cfg.max_input_length, 280)
        self.assertTrue(cfg.quick_actions_generate)
        self.assertEqual(cfg.log_level, "DEBUG")
        self.assertEqual(cfg.open_marker, "**")

    def test_openai_compatible_provider(self):
        cfg = parse_config({
            "general": {"default_provider": "local"},
            "providers": [
                {"id": "gemini", "type": "gemini"},
                {
                    "id": "local",
                    "type": "openai-compatible",
                    "api_url": "http://localhost:8080",
                    "model": "tiny",
                    "headers": {"X-Test": "1"},
                },
            ],
        })
        self.assertEqual(cfg.default_provider, "local")
        local = cfg.get_provider("local")
        self.assertEqual(local.headers, {"X-Test": "1"})
        self.assertEqual(cfg.get_provider("gemini").model, GEMINI_DEFAULT_MODEL)

    def test_default_provider_is_first_listed(self):
        cfg = parse_config({"providers": [
            {"id": "local", "type": "openai-compatible", "api_url": "http://x", "model": "m"},
            {"id": "gemini", "type": "gemini"},
        ]})
        self.assertEqual(cfg.default_provider, "local")

    def test_invalid_configs_raise(self):
        cases = {
            "missing type": {"providers": [{"id": "x"}]},
            "unsupported type": {"providers": [{"id": "x", "type": "ollama"}]},
            "openai without url": {"providers": [{"id": "x", "type": "openai-compatible", "model": "m"}]},
            "openai without model": {"providers": [{"id": "x", "type": "openai-compatible", "api_url": "http://x"}]},
            "headers not a table": {"providers": [{"id": "g", "type": "gemini", "headers": "X: 1"}]},
            "duplicate ids": {"providers": [{"id": "g", "type": "gemini"}, {"id": "g", "type": "gemini"}]},
            "unknown default": {"general": {"default_provider": "nope"}},
            "zero timeout": {"general": {"timeout": 0}},
            "text timeout": {"general": {"timeout": "soon"}},
            "negative max length": {"general": {"max_input_length": -1}},
            "empty marker": {"markup": {"open": ""}},
        }
        for name, data in cases.items():
            with self.subTest(name):
                with self.assertRaises(ValueError):
                    parse_config(data)

    def test_get_provider_unknown_raises(self):
        with self.assertRaises(ValueError):
            parse_config({}).get_provider("missing")


class ResolveApiKeyTests(unittest.TestCase):
    def test_config_key_wins(self):
        provider = ProviderConfig(id="gemini", type="gemini", api_url="u", model="m", api_key="cfg")
        with mock.patch.dict(os.environ, {"GEMINI_API_KEY": "env"}):
            self.assertEqual(resolve_api_key(provider), "cfg")

    def test_env_var_name_from_provider_id(self):
        provider = ProviderConfig(id="my-proxy", type="openai-compatible", api_url="u", model="m")
        with mock.patch.dict(os.environ, {"MY_PROXY_API_KEY": "env"}):
            self.assertEqual(resolve_api_key(provider), "env")

    def test_no_key_returns_none(self):
        provider = ProviderConfig(id="gemini", type="gemini", api_url="u", model="m")
        with mock.patch.dict(os.environ, {}, clear=True):
            self.assertIsNone(resolve_api_key(provider))


class LoadConfigTests(unittest.TestCase):
    def write_config(self, home: Path, text: str):
        cfg_dir = home / ".quipchat"
        cfg_dir.mkdir()
        (cfg_dir / "config.toml").write_text(text, encoding="utf-8")

    def test_missing_file_raises(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with mock.patch.dict(os.environ, {"HOME": tmpdir}):
                with self.assertRaises(FileNotFoundError):
                    load_config()

    def test_invalid_toml_raises_value_error(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            self.write_config(Path(tmpdir), "[general\ntimeout = ")
            with mock.patch.dict(os.environ, {"HOME": tmpdir}):
                with self.assertRaises(ValueError):
                    load_config()

    def test_loads_file_and_log_path(self):
        config_text = """
[general]
default_provider = "gemini"
timeout = 30
log_file = "{log}"

[markup]
open = "[["
close = "]]"

[[providers]]
id = "gemini"
type = "gemini"
api_key = "k"
model = "gemini-1.5-pro"
"""
        with tempfile.TemporaryDirectory() as tmpdir:
            log_path = Path(tmpdir) / "logs" / "quipchat.log"
            self.write_config(Path(tmpdir), config_text.format(log=log_path.as_posix()))
            with mock.patch.dict(os.environ, {"HOME": tmpdir}):
                cfg = load_config()
            self.assertEqual(cfg.timeout, 30)
            self.assertEqual(cfg.get_provider("gemini").model, "gemini-1.5-pro")
            self.assertEqual(cfg.get_provider("gemini").api_key, "k")
            self.assertEqual((cfg.open_marker, cfg.close_marker), ("[[", "]]"))
            self.assertEqual(cfg.log_file, log_path)
            self.assertTrue(log_path.parent.exists())
            for handler in logging.getLogger().handlers:
                handler.close()
            logging.getLogger().handlers.clear()


if __name__ == "__main__":
    unittest.main()
