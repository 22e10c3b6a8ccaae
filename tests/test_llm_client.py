import logging
from types import SimpleNamespace

import pytest

from autofill import llm_client
from autofill.config import (
    AnythingLLMSettings, AutofillConfig, GroqSettings, OllamaSettings, OpenAISettings,
)
from autofill.exceptions import BackendCallError, NoBackendAvailable
from autofill.llm_client import (
    AIServiceOrchestrator, AIServiceType, AnythingLLMService, GroqService, OllamaService,
    OpenAIService, build_services,
)

from stubs import StubService


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload or {}
        self.text = text

    def json(self):
        return self._payload


class FakeSession:
    def __init__(self, response):
        self.response = response
        self.requests = []

    def post(self, url, **kwargs):
        self.requests.append((url, kwargs))
        return self.response


def fake_chat_client(content):
    calls = []

    def create(**kwargs):
        calls.append(kwargs)
        message = SimpleNamespace(content=content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])

    client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
    return client, calls


def test_orchestrator_routes_to_the_supporting_backend():
    groq = StubService("from groq", AIServiceType.GROQ)
    openai = StubService("from openai", AIServiceType.OPENAI)
    orchestrator = AIServiceOrchestrator([groq, openai])

    assert orchestrator.execute(AIServiceType.OPENAI, "hello") == "from openai"
    assert openai.prompts == ["hello"]
    assert groq.prompts == []


def test_missing_backend_raises():
    orchestrator = AIServiceOrchestrator([StubService(service_type=AIServiceType.GROQ)])

    with pytest.raises(NoBackendAvailable) as excinfo:
        orchestrator.execute(AIServiceType.OLLAMA, "hello")

    assert excinfo.value.service_type is AIServiceType.OLLAMA
    assert "ollama" in str(excinfo.value)


def test_disabled_backend_is_not_used():
    orchestrator = AIServiceOrchestrator([StubService(enabled=False)])

    with pytest.raises(NoBackendAvailable):
        orchestrator.find_service(AIServiceType.OPENAI)


def test_supported_services_are_listed_without_calling_them():
    ollama = StubService(service_type=AIServiceType.OLLAMA)
    openai = StubService(service_type=AIServiceType.OPENAI)
    orchestrator = AIServiceOrchestrator([ollama])
    orchestrator.register(openai)
    orchestrator.register(StubService(service_type=AIServiceType.GROQ, enabled=False))

    assert orchestrator.find_supported_services() == [AIServiceType.OPENAI, AIServiceType.OLLAMA]
    assert ollama.prompts == [] and openai.prompts == []


def test_generate_rejects_an_empty_prompt():
    with pytest.raises(ValueError):
        StubService().generate("")


def test_generate_strips_the_response():
    assert StubService("  {}\n").generate("prompt") == "{}"


def test_generate_reraises_backend_failures(caplog):
    service = StubService(ConnectionError("timed out"))

    with caplog.at_level(logging.ERROR):
        with pytest.raises(ConnectionError):
            service.generate("prompt")

    assert "openai API call failed: timed out" in caplog.text


def test_openai_service_uses_chat_completions():
    client, calls = fake_chat_client(' {"name": "John"} ')
    settings = OpenAISettings(enabled=True, api_key="key", model="gpt-test", max_tokens=100)

    assert OpenAIService(settings, client=client).generate("prompt") == '{"name": "John"}'
    assert calls == [{
        "model": "gpt-test",
        "messages": [{"role": "user", "content": "prompt"}],
        "max_tokens": 100,
        "temperature": 0.0,
    }]


def test_empty_completion_is_an_error():
    client, _ = fake_chat_client(None)
    service = OpenAIService(OpenAISettings(enabled=True, api_key="key"), client=client)

    with pytest.raises(BackendCallError):
        service.generate("prompt")


def test_missing_api_key_fails_the_call():
    service = OpenAIService(OpenAISettings(enabled=True))

    with pytest.raises(RuntimeError, match="No openai API key configured"):
        service.generate("prompt")


def test_groq_requests_are_throttled(monkeypatch):
    sleeps = []
    monkeypatch.setattr(llm_client.time, "sleep", sleeps.append)
    client, calls = fake_chat_client("{}")
    service = GroqService(GroqSettings(enabled=True, api_key="key", min_interval=5.0), client=client)

    service.generate("first")
    service.generate("second")

    assert len(calls) == 2
    assert len(sleeps) == 1 and 0 < sleeps[0] <= 5.0


def test_anythingllm_posts_to_the_workspace_chat():
    session = FakeSession(FakeResponse(payload={"textResponse": "{}"}))
    settings = AnythingLLMSettings(enabled=True, api_key="key", base_url="http://llm/api/v1/",
                                   workspace_slug="forms")

    assert AnythingLLMService(settings, session=session).generate("prompt") == "{}"
    url, kwargs = session.requests[0]
    assert url == "http://llm/api/v1/workspace/forms/chat"
    assert kwargs["headers"]["Authorization"] == "Bearer key"
    assert kwargs["json"]["message"] == "prompt"
    assert kwargs["timeout"] == settings.timeout


def test_anythingllm_error_status_raises():
    session = FakeSession(FakeResponse(status_code=401, text="unauthorized"))
    settings = AnythingLLMSettings(enabled=True, api_key="key", base_url="http://llm", workspace_slug="forms")

    with pytest.raises(BackendCallError) as excinfo:
        AnythingLLMService(settings, session=session).generate("prompt")

    assert excinfo.value.status_code == 401


def test_anythingllm_requires_its_settings():
    service = AnythingLLMService(AnythingLLMSettings(enabled=True, api_key="key"), session=FakeSession(None))

    with pytest.raises(ValueError, match="base URL"):
        service.generate("prompt")


def test_ollama_generate():
    session = FakeSession(FakeResponse(payload={"response": '{"a": "1"}'}))
    settings = OllamaSettings(enabled=True, model="llama3", max_tokens=50)

    assert OllamaService(settings, session=session).generate("prompt") == '{"a": "1"}'
    url, kwargs = session.requests[0]
    assert url == "http://localhost:11434/api/generate"
    assert kwargs["json"]["stream"] is False
    assert kwargs["json"]["options"]["num_predict"] == 50


def test_build_services_creates_enabled_backends_only():
    config = AutofillConfig(
        openai=OpenAISettings(enabled=True, api_key="key"),
        ollama=OllamaSettings(enabled=True),
    )

    services = build_services(config)

    assert [type(s) for s in services] == [OpenAIService, OllamaService]
    assert services[0].settings is config.openai


def test_provider_log_file_is_written(tmp_path):
    llm_client.configure_logging(str(tmp_path))
    try:
        llm_client._log_query("filetest", "stub", "the prompt", 0.1, response="the response")
    finally:
        llm_client.configure_logging(None)

    logger = logging.getLogger("llm_filetest")
    for handler in logger.handlers:
        handler.flush()
    files = list(tmp_path.glob("filetest_*.log"))
    assert len(files) == 1
    assert "the response" in files[0].read_text(encoding="utf-8")
