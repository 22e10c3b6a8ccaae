"""
Configuration for the autofill backends.

Settings are read from a YAML file (path given explicitly or through the
AUTOFILL_CONFIG environment variable). API keys that are not in the file are
taken from the api_keys.json file in the per-user application directory and
finally from the <PROVIDER>_API_KEY environment variables.
"""

import os
import json
import logging
from typing import Optional

import yaml
from pydantic import BaseModel, Field

CONFIG_ENV_VAR = "AUTOFILL_CONFIG"


def get_appdata_dir() -> str:
    appdata = os.getenv("APPDATA") or os.path.expanduser("~")
    return os.path.join(appdata, "FormFillerAI")


API_KEYS_PATH = os.path.join(get_appdata_dir(), "api_keys.json")


class BackendSettings(BaseModel):
    enabled: bool = False
    model: str = ""
    max_tokens: int = 4096
    temperature: float = 0.0
    timeout: float = Field(default=60.0, gt=0, description="Seconds before a call is abandoned")


class OpenAISettings(BackendSettings):
    api_key: Optional[str] = None
    model: str = "gpt-4.1-mini"


class GroqSettings(BackendSettings):
    api_key: Optional[str] = None
    model: str = "llama-3.3-70b-versatile"
    min_interval: float = Field(default=2.0, ge=0, description="Seconds between two requests (free tier)")


class AnythingLLMSettings(BackendSettings):
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    workspace_slug: Optional[str] = None


class OllamaSettings(BackendSettings):
    url: str = "http://localhost:11434"
    model: str = "llama3"
    timeout: float = Field(default=300.0, gt=0)


class AutofillConfig(BaseModel):
    openai: OpenAISettings = Field(default_factory=OpenAISettings)
    groq: GroqSettings = Field(default_factory=GroqSettings)
    anythingllm: AnythingLLMSettings = Field(default_factory=AnythingLLMSettings)
    ollama: OllamaSettings = Field(default_factory=OllamaSettings)
    log_dir: Optional[str] = None
    entities_path: Optional[str] = None


def get_api_key_from_file(provider: str, path: str = API_KEYS_PATH) -> Optional[str]:
    """Retrieve the API key for the given provider from the api keys file."""
    try:
        with open(path, "r") as file:
            api_keys = json.load(file)
            for key in api_keys:
                if key["provider"] == provider:
                    return key["key"]
    except FileNotFoundError:
        logging.debug(f"API keys file not found at {path}")
    except Exception as e:
        logging.error(f"Failed to read API keys: {e}")
    return None


def _fill_api_keys(config: AutofillConfig, api_keys_path: str) -> None:
    for provider in ("openai", "groq", "anythingllm"):
        settings = getattr(config, provider)
        if settings.api_key:
            continue
        settings.api_key = (get_api_key_from_file(provider, api_keys_path)
                            or os.getenv(f"{provider.upper()}_API_KEY"))


def load_config(path: Optional[str] = None, api_keys_path: str = API_KEYS_PATH) -> AutofillConfig:
    """Load the configuration; without a file every backend is disabled."""
    path = path or os.getenv(CONFIG_ENV_VAR)
    data = {}
    if path:
        try:
            with open(path, "r", encoding="utf-8") as file:
                data = yaml.safe_load(file) or {}
        except FileNotFoundError:
            raise FileNotFoundError(f"Config file not found: {path}")
        logging.info(f"Loaded autofill configuration from {path}")
    else:
        logging.info("No autofill configuration file given, using defaults")

    config = AutofillConfig(**data)
    _fill_api_keys(config, api_keys_path)
    return config
