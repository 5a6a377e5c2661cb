import asyncio
import json

import httpx

from hireloop.config.settings import Settings
from hireloop.core.provider_gateway import ProviderGateway, strip_markdown_fence
from hireloop.core.providers import (
    GeminiProvider,
    OpenAICompatibleProvider,
    build_text_providers,
)
from hireloop.models.provider import AttemptOutcome

from conftest import FakeProvider, FakeSpeechProvider


def test_timeout_falls_back_to_next_provider() -> None:
    slow = FakeProvider("slow", reply="too late", delay=0.5)
    fast = FakeProvider("fast", reply="answer from B")
    gateway = ProviderGateway([slow, fast], timeout_seconds=0.05)

    result = asyncio.run(gateway.generate("prompt"))

    assert result.ok
    assert result.text == "answer from B"
    assert result.provider == "fast"
    assert [a.outcome for a in result.attempts] == [AttemptOutcome.TIMEOUT, AttemptOutcome.SUCCESS]
    assert [a.provider for a in result.attempts] == ["slow", "fast"]


def test_error_and_empty_replies_are_classified() -> None:
    broken = FakeProvider("broken", error=httpx.ConnectError("refused"))
    empty = FakeProvider("empty", reply="   ")
    working = FakeProvider("working", reply="fine")
    gateway = ProviderGateway([broken, empty, working])

    result = asyncio.run(gateway.generate("prompt"))

    assert result.text == "fine"
    assert [a.outcome for a in result.attempts] == [
        AttemptOutcome.ERROR,
        AttemptOutcome.EMPTY,
        AttemptOutcome.SUCCESS,
    ]
    assert "ConnectError" in result.attempts[0].detail


def test_all_providers_failing_returns_no_result() -> None:
    gateway = ProviderGateway([
        FakeProvider("a", error=RuntimeError("boom")),
        FakeProvider("b", reply=None),
    ])

    result = asyncio.run(gateway.generate("prompt"))

    assert not result.ok
    assert result.text is None
    assert len(result.attempts) == 2


def test_no_providers_configured() -> None:
    result = asyncio.run(ProviderGateway([]).generate("prompt"))

    assert result.text is None
    assert result.attempts == []


def test_json_requests_strip_markdown_fences() -> None:
    provider = FakeProvider(reply='```json\n{"score": 90}\n```')
    gateway = ProviderGateway([provider])

    result = asyncio.run(gateway.generate("prompt", wants_json=True))

    assert json.loads(result.text) == {"score": 90}


def test_strip_markdown_fence_leaves_plain_text() -> None:
    assert strip_markdown_fence('  {"a": 1}  ') == '{"a": 1}'
    assert strip_markdown_fence("```\nplain\n```") == "plain"


def test_speech_synthesis() -> None:
    gateway = ProviderGateway([], speech_provider=FakeSpeechProvider(audio=b"mp3-bytes"))

    speech = asyncio.run(gateway.synthesize_speech("Hello"))

    assert speech.ok
    assert speech.audio == b"mp3-bytes"
    assert speech.provider == "fake-tts"


def test_speech_failure_means_no_audio() -> None:
    failing = ProviderGateway([], speech_provider=FakeSpeechProvider(error=RuntimeError("429")))
    missing = ProviderGateway([])

    assert not asyncio.run(failing.synthesize_speech("Hello")).ok
    assert not asyncio.run(missing.synthesize_speech("Hello")).ok


def test_openai_compatible_provider_requests_json_mode() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": '{"ok": true}'}}]})

    client = httpx.AsyncClient(base_url="https://llm.test/v1", transport=httpx.MockTransport(handler))
    provider = OpenAICompatibleProvider("groq", "key", "llama", "https://llm.test/v1", client=client)

    text = asyncio.run(provider.complete("prompt", 100, wants_json=True, system_prompt="be terse"))

    assert text == '{"ok": true}'
    assert seen["path"] == "/v1/chat/completions"
    assert seen["body"]["response_format"] == {"type": "json_object"}
    assert seen["body"]["messages"][0] == {"role": "system", "content": "be terse"}


def test_gemini_provider_joins_text_parts() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["key"] == "secret"
        assert request.url.path.endswith("/models/gemini-test:generateContent")
        return httpx.Response(200, json={
            "candidates": [{"content": {"parts": [{"text": "Hello "}, {"text": "world"}]}}]
        })

    client = httpx.AsyncClient(base_url="https://gemini.test/v1beta", transport=httpx.MockTransport(handler))
    provider = GeminiProvider("secret", "gemini-test", "https://gemini.test/v1beta", client=client)

    assert asyncio.run(provider.complete("prompt", 50)) == "Hello world"


def test_http_error_becomes_error_attempt() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"error": "overloaded"})

    client = httpx.AsyncClient(base_url="https://llm.test/v1", transport=httpx.MockTransport(handler))
    provider = OpenAICompatibleProvider("openai", "key", "gpt", "https://llm.test/v1", client=client)
    gateway = ProviderGateway([provider, FakeProvider("backup", reply="backup answer")])

    result = asyncio.run(gateway.generate("prompt"))

    assert result.provider == "backup"
    assert result.attempts[0].outcome == AttemptOutcome.ERROR


def test_provider_order_skips_missing_keys(monkeypatch) -> None:
    monkeypatch.setenv("PROVIDER_ORDER", "groq,unknown,gemini,openai")
    settings = Settings(_env_file=None, groq_api_key="g", gemini_api_key="k", openai_api_key="")

    providers = build_text_providers(settings)

    assert [provider.name for provider in providers] == ["groq", "gemini"]
