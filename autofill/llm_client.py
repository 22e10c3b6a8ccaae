import os
import json
import time
import uuid
import logging
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Optional

import requests
from groq import Groq
from openai import OpenAI

from .config import (
    AnythingLLMSettings,
    AutofillConfig,
    GroqSettings,
    OllamaSettings,
    OpenAISettings,
)
from .exceptions import BackendCallError, NoBackendAvailable


class AIServiceType(str, Enum):
    OPENAI = "openai"
    GROQ = "groq"
    ANYTHINGLLM = "anythingllm"
    OLLAMA = "ollama"


# Provider query logs; None keeps them in the normal log
_log_dir: Optional[str] = None


def configure_logging(log_dir: Optional[str]) -> None:
    """Write one query log file per provider into *log_dir*."""
    global _log_dir
    _log_dir = log_dir


def _provider_logger(provider: str) -> logging.Logger:
    """Logger named llm_<provider>, with a timestamped file handler when a log directory is set."""
    logger = logging.getLogger(f"llm_{provider}")
    if logger.handlers or not _log_dir:
        return logger

    os.makedirs(_log_dir, exist_ok=True)
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    handler = logging.FileHandler(os.path.join(_log_dir, f"{provider}_{stamp}.log"), encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                                           datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    logger.propagate = False
    return logger


def _log_query(provider: str, model: str, prompt: str, duration: float,
               response: Optional[str] = None, error: Optional[BaseException] = None) -> None:
    """Log one backend call as a JSON document: the prompt and either the response or the error."""
    entry = {
        "timestamp": datetime.now().isoformat(),
        "provider": provider,
        "model": model,
        "duration_seconds": round(duration, 3),
        "prompt_length": len(prompt),
        "prompt": prompt,
    }
    logger = _provider_logger(provider)
    if error is None:
        entry["response_length"] = len(response or "")
        entry["response"] = response
        logger.info(f"QUERY: {json.dumps(entry, ensure_ascii=False, indent=2)}")
    else:
        entry["status"] = "FAILED"
        entry["error_type"] = type(error).__name__
        entry["error_message"] = str(error)
        logger.error(f"FAILED_QUERY: {json.dumps(entry, ensure_ascii=False, indent=2)}")


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------


class LLMService:
    """A text generation backend. Subclasses implement _generate()."""

    service_type: AIServiceType

    def __init__(self, settings):
        self.settings = settings

    def supports(self, service_type: AIServiceType) -> bool:
        return self.settings.enabled and service_type == self.service_type

    def generate(self, prompt: str) -> str:
        """Send a prompt to the backend and return the generated text.

        Failures are logged and re-raised; nothing is retried.
        """
        if not prompt:
            raise ValueError("Prompt must be provided")

        provider = self.service_type.value
        start_time = time.time()
        logging.debug(f"Sending prompt to {provider} {self.settings.model}: {prompt[:200]}...")
        try:
            result = self._generate(prompt)
        except Exception as e:
            _log_query(provider, self.settings.model, prompt, time.time() - start_time, error=e)
            logging.error(f"{provider} API call failed: {e}")
            raise

        result = result.strip()
        _log_query(provider, self.settings.model, prompt, time.time() - start_time, response=result)
        logging.debug(f"{provider} API response: {result[:200]}...")
        return result

    def _generate(self, prompt: str) -> str:
        raise NotImplementedError


class _ChatCompletionService(LLMService):
    """Backends speaking the OpenAI chat completions protocol."""

    def __init__(self, settings, client=None):
        super().__init__(settings)
        self._client = client

    @property
    def client(self):
        """Lazily initialize and return the SDK client."""
        if self._client is None:
            if not self.settings.api_key:
                raise RuntimeError(f"No {self.service_type.value} API key configured")
            self._client = self._create_client()
        return self._client

    def _create_client(self):
        raise NotImplementedError

    def _generate(self, prompt: str) -> str:
        response = self.client.chat.completions.create(
            model=self.settings.model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=self.settings.max_tokens,
            temperature=self.settings.temperature,
        )
        content = response.choices[0].message.content
        if content is None:
            raise BackendCallError(self.service_type.value, "API returned None content")
        return content


class OpenAIService(_ChatCompletionService):
    service_type = AIServiceType.OPENAI

    def __init__(self, settings: OpenAISettings, client: Optional[OpenAI] = None):
        super().__init__(settings, client)

    def _create_client(self) -> OpenAI:
        return OpenAI(api_key=self.settings.api_key, timeout=self.settings.timeout, max_retries=0)


class GroqService(_ChatCompletionService):
    service_type = AIServiceType.GROQ

    def __init__(self, settings: GroqSettings, client: Optional[Groq] = None):
        super().__init__(settings, client)
        self._last_request_time = 0.0

    def _create_client(self) -> Groq:
        return Groq(api_key=self.settings.api_key, timeout=self.settings.timeout, max_retries=0)

    def _generate(self, prompt: str) -> str:
        # Rate limiting for Groq free tier
        time_since_last = time.time() - self._last_request_time
        if time_since_last < self.settings.min_interval:
            sleep_time = self.settings.min_interval - time_since_last
            logging.info(f"Rate limiting: waiting {sleep_time:.1f}s before Groq request")
            time.sleep(sleep_time)
        self._last_request_time = time.time()
        return super()._generate(prompt)


class AnythingLLMService(LLMService):
    service_type = AIServiceType.ANYTHINGLLM

    def __init__(self, settings: AnythingLLMSettings, session: Optional[requests.Session] = None):
        super().__init__(settings)
        self.session = session or requests.Session()

    def _chat_url_and_headers(self):
        if not self.settings.api_key:
            raise ValueError("AnythingLLM API key not configured.")
        if not self.settings.base_url:
            raise ValueError("AnythingLLM base URL not configured.")
        if not self.settings.workspace_slug:
            raise ValueError("AnythingLLM workspace slug not configured.")

        chat_url = f"{self.settings.base_url.rstrip('/')}/workspace/{self.settings.workspace_slug}/chat"
        headers = {
            "accept": "application/json",
            "Content-Type": "application/json",
            "Authorization": "Bearer " + self.settings.api_key,
        }
        return chat_url, headers

    def _generate(self, prompt: str) -> str:
        chat_url, headers = self._chat_url_and_headers()
        data = {
            "message": prompt,
            "mode": "chat",
            "sessionId": str(uuid.uuid4()),
            "attachments": []
        }
        response = self.session.post(chat_url, headers=headers, json=data, timeout=self.settings.timeout)
        if response.status_code != 200:
            raise BackendCallError("anythingllm", f"{response.status_code} {response.text}", response.status_code)
        text = response.json().get("textResponse")
        if text is None:
            raise BackendCallError("anythingllm", "response contains no textResponse")
        return text


class OllamaService(LLMService):
    service_type = AIServiceType.OLLAMA

    def __init__(self, settings: OllamaSettings, session: Optional[requests.Session] = None):
        super().__init__(settings)
        self.session = session or requests.Session()

    def _generate(self, prompt: str) -> str:
        data = {
            "model": self.settings.model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": self.settings.temperature,
                "num_predict": self.settings.max_tokens,
            },
        }
        response = self.session.post(f"{self.settings.url.rstrip('/')}/api/generate", json=data,
                                     timeout=self.settings.timeout)
        if response.status_code != 200:
            raise BackendCallError("ollama", f"{response.status_code} {response.text}", response.status_code)
        text = response.json().get("response")
        if text is None:
            raise BackendCallError("ollama", "response contains no generated text")
        return text


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class AIServiceOrchestrator:
    """Routes a prompt to the first registered backend that supports the requested type."""

    def __init__(self, services: Optional[Iterable[LLMService]] = None):
        self.services: List[LLMService] = list(services or [])

    def register(self, service: LLMService) -> None:
        self.services.append(service)

    def find_service(self, service_type: AIServiceType) -> LLMService:
        for service in self.services:
            if service.supports(service_type):
                return service
        raise NoBackendAvailable(service_type)

    def execute(self, service_type: AIServiceType, prompt: str) -> str:
        return self.find_service(service_type).generate(prompt)

    def find_supported_services(self) -> List[AIServiceType]:
        """Every service type for which at least one backend is available, without calling any."""
        return [t for t in AIServiceType if any(s.supports(t) for s in self.services)]


def build_services(config: AutofillConfig) -> List[LLMService]:
    """Create a backend for every enabled provider in *config*."""
    configure_logging(config.log_dir)
    services: List[LLMService] = []
    factories: Dict[str, type] = {
        "openai": OpenAIService,
        "groq": GroqService,
        "anythingllm": AnythingLLMService,
        "ollama": OllamaService,
    }
    for name, factory in factories.items():
        settings = getattr(config, name)
        if settings.enabled:
            services.append(factory(settings))
            logging.info(f"Enabled AI service: {name} ({settings.model})")
    return services


def build_orchestrator(config: AutofillConfig) -> AIServiceOrchestrator:
    return AIServiceOrchestrator(build_services(config))
