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

"""Configuration loading and management for QuipChat."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import toml

from .markup import DEFAULT_CLOSE_MARKER, DEFAULT_OPEN_MARKER

DEFAULT_SYSTEM_INSTRUCTION = (
    "Respond tersely in English, with a witty and slightly sarcastic tone, to this message:"
)
DEFAULT_FALLBACK_TEXT = "Oops! Something went wrong."
DEFAULT_TIMEOUT = 60  # seconds
DEFAULT_MAX_INPUT_LENGTH = 100

GEMINI_API_URL = "https://generativelanguage.googleapis.com"
GEMINI_DEFAULT_MODEL = "gemini-2.0-flash"

SUPPORTED_PROVIDER_TYPES = ("gemini", "openai-compatible")

logger = logging.getLogger(__name__)


@dataclass
class ProviderConfig:
    """Configuration for a generation backend."""
    id: str
    type: str  # "gemini" or "openai-compatible"
    api_url: str
    model: str
    api_key: str = ""
    headers: dict = field(default_factory=dict)


@dataclass
class Config:
    """Application configuration."""
    default_provider: str
    providers: list[ProviderConfig]
    system_instruction: str = DEFAULT_SYSTEM_INSTRUCTION
    fallback_text: str = DEFAULT_FALLBACK_TEXT
    timeout: float = DEFAULT_TIMEOUT  # API request timeout in seconds
    quick_actions_generate: bool = False  # Quick actions also ask the backend
    max_input_length: int = DEFAULT_MAX_INPUT_LENGTH
    open_marker: str = DEFAULT_OPEN_MARKER
    close_marker: str = DEFAULT_CLOSE_MARKER
    log_level: str = "INFO"  # Logging level: DEBUG, INFO, WARNING, ERROR
    log_file: Optional[Path] = None  # Path to log file (None = stderr)

    def get_provider(self, provider_id: str) -> ProviderConfig:
        """Get provider configuration by id."""
        for p in self.providers:
            if p.id == provider_id:
                return p
        raise ValueError(f"Provider '{provider_id}' not found in configuration")


def resolve_api_key(provider: ProviderConfig) -> Optional[str]:
    """Resolve API key from config or environment variable.

    Checks in order:
    1. provider.api_key from config
    2. {PROVIDER_ID}_API_KEY env var (e.g., GEMINI_API_KEY)
    """
    if provider.api_key:
        return provider.api_key

    env_var = f"{provider.id.upper().replace('-', '_')}_API_KEY"
    env_key = os.environ.get(env_var)
    if env_key:
        logger.debug("Using API key from %s environment variable", env_var)
        return env_key

    return None


def default_gemini_provider() -> ProviderConfig:
    return ProviderConfig(
        id="gemini",
        type="gemini",
        api_url=GEMINI_API_URL,
        model=GEMINI_DEFAULT_MODEL,
    )


def _setup_logging(config: Config) -> None:
    """Configure logging based on config settings.

    Args:
        config: Configuration object with logging settings
    """
    numeric_level = getattr(logging, config.log_level, logging.INFO)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    if config.log_file:
        config.log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(config.log_file)
    else:
        handler = logging.StreamHandler()

    handler.setLevel(numeric_level)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    logging.info(f"Logging initialized: level={config.log_level}, file={config.log_file}")


def _parse_provider(entry: dict) -> ProviderConfig:
    pid = entry.get('id')
    ptype = entry.get('type')
    if not pid or not ptype:
        raise ValueError("Each provider must have id and type")
    if ptype not in SUPPORTED_PROVIDER_TYPES:
        raise ValueError(
            f"Provider '{pid}' has unsupported type '{ptype}'. Options: {list(SUPPORTED_PROVIDER_TYPES)}"
        )

    api_url = entry.get('api_url')
    model = entry.get('model')
    if ptype == "gemini":
        api_url = api_url or GEMINI_API_URL
        model = model or GEMINI_DEFAULT_MODEL
    if not api_url:
        raise ValueError(f"Provider '{pid}' is missing api_url")
    if not model:
        raise ValueError(f"Provider '{pid}' is missing model")

    headers = entry.get('headers', {})
    if not isinstance(headers, dict):
        raise ValueError(f"Provider '{pid}' headers must be a table")

    return ProviderConfig(
        id=pid,
        type=ptype,
        api_url=api_url,
        model=model,
        api_key=entry.get('api_key', ''),
        headers=headers,
    )


def parse_config(data: dict) -> Config:
    """Build a Config from already-parsed TOML data.

    Raises:
        ValueError: If configuration is invalid
    """
    general_section = data.get('general', {})
    markup_section = data.get('markup', {})

    log_level = str(general_section.get('log_level', 'INFO')).upper()
    log_file_str = general_section.get('log_file')
    log_file = Path(log_file_str).expanduser() if log_file_str else None

    providers = [_parse_provider(entry) for entry in data.get('providers', [])]
    if not providers:
        providers = [default_gemini_provider()]

    provider_ids = [p.id for p in providers]
    if len(set(provider_ids)) != len(provider_ids):
        raise ValueError(f"Duplicate provider ids in {provider_ids}")

    default_provider = general_section.get('default_provider', providers[0].id)
    if default_provider not in provider_ids:
        raise ValueError(f"default_provider '{default_provider}' not found in providers {provider_ids}")

    try:
        timeout = float(general_section.get('timeout', DEFAULT_TIMEOUT))
        max_input_length = int(general_section.get('max_input_length', DEFAULT_MAX_INPUT_LENGTH))
    except (TypeError, ValueError):
        raise ValueError("timeout and max_input_length must be numbers")
    if timeout <= 0:
        raise ValueError("timeout must be positive")
    if max_input_length <= 0:
        raise ValueError("max_input_length must be positive")

    open_marker = markup_section.get('open', DEFAULT_OPEN_MARKER)
    close_marker = markup_section.get('close', DEFAULT_CLOSE_MARKER)
    if not open_marker or not close_marker:
        raise ValueError("[markup] open and close markers must be non-empty")

    return Config(
        default_provider=default_provider,
        providers=providers,
        system_instruction=general_section.get('system_instruction', DEFAULT_SYSTEM_INSTRUCTION),
        fallback_text=general_section.get('fallback_text', DEFAULT_FALLBACK_TEXT),
        timeout=timeout,
        quick_actions_generate=bool(general_section.get('quick_actions_generate', False)),
        max_input_length=max_input_length,
        open_marker=open_marker,
        close_marker=close_marker,
        log_level=log_level,
        log_file=log_file,
    )


def config_path() -> Path:
    return Path.home() / ".quipchat" / "config.toml"


def load_config() -> Config:
    """Load configuration from ~/.quipchat/config.toml.

    Returns:
        Config object with loaded or default values

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If configuration is invalid
    """
    path = config_path()

    if not path.exists():
        raise FileNotFoundError(
            f"Configuration file not found at {path}\n"
            "Please create ~/.quipchat/config.toml with your settings."
        )

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = toml.load(f)
    except toml.TomlDecodeError as e:
        raise ValueError(f"Invalid TOML in {path}: {e}") from e

    config = parse_config(data)

    _setup_logging(config)

    return config
