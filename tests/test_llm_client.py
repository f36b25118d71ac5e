import json
from types import SimpleNamespace

import httpx
import pytest
from openai import APIConnectionError

import generate.adapter as adapter
import shared.chatgpt as chatgpt
from conftest import make_items
from generate.adapter import (
    ChatGPTConversationClient,
    MissingCredentialError,
    unwrap_structured_batch,
)
from generate.models import ConversationBatch, ConversationItem, PersonaConfig
from generate.validator import validate_conversations
from shared.chatgpt import ChatGPTWrapper

THEME = "Late Night Vibes"


def completion(content, refusal=None):
    message = SimpleNamespace(content=content, refusal=refusal)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeCompletions:
    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def parse(self, **kwargs):
        return self.create(**kwargs)


class FakeOpenAI:
    instances = []
    outcomes = []

    def __init__(self, api_key=None, timeout=None):
        self.api_key = api_key
        self.timeout = timeout
        completions = FakeCompletions(FakeOpenAI.outcomes)
        self.chat = SimpleNamespace(completions=completions)
        self.beta = SimpleNamespace(chat=SimpleNamespace(completions=completions))
        FakeOpenAI.instances.append(self)


@pytest.fixture
def fake_openai(monkeypatch):
    FakeOpenAI.instances = []
    FakeOpenAI.outcomes = []
    monkeypatch.setattr(chatgpt, "OpenAI", FakeOpenAI)
    monkeypatch.setattr(ChatGPTWrapper.ask_text.retry, "sleep", lambda _seconds: None)
    monkeypatch.setattr(ChatGPTWrapper.ask_structured_text.retry, "sleep", lambda _seconds: None)
    return FakeOpenAI


class RecordingWrapper:
    instances = []

    def __init__(self, model_name, api_key=None, timeout=120.0):
        self.model_name = model_name
        self.api_key = api_key
        self.calls = []
        self.reply = "[]"
        RecordingWrapper.instances.append(self)

    def ask_structured_text(self, **kwargs):
        self.calls.append(kwargs)
        return self.reply

    def ask_text(self, **kwargs):
        self.calls.append(kwargs)
        return self.reply


@pytest.fixture
def recording_wrapper(monkeypatch):
    RecordingWrapper.instances = []
    monkeypatch.setattr(adapter, "ChatGPTWrapper", RecordingWrapper)
    return RecordingWrapper


def test_wrapper_sends_sampling_options(fake_openai):
    fake_openai.outcomes = [completion("[]")]
    llm = ChatGPTWrapper(model_name="gpt-test", api_key="sk-test")
    text = llm.ask_text("system", "user", temperature=0.75, top_p=0.95, top_k=40)

    assert text == "[]"
    call = fake_openai.instances[0].chat.completions.calls[0]
    assert call["model"] == "gpt-test"
    assert call["temperature"] == 0.75
    assert call["top_p"] == 0.95
    assert call["extra_body"] == {"top_k": 40}
    assert call["stream"] is False
    assert [m["role"] for m in call["messages"]] == ["system", "user"]


def test_wrapper_omits_unset_options(fake_openai):
    fake_openai.outcomes = [completion("[]")]
    ChatGPTWrapper(model_name="gpt-test", api_key="sk-test").ask_text("s", "u")
    call = fake_openai.instances[0].chat.completions.calls[0]
    assert "extra_body" not in call
    assert "top_p" not in call
    assert "response_format" not in call


def test_wrapper_raises_on_refusal(fake_openai):
    fake_openai.outcomes = [completion(None, refusal="not allowed")]
    with pytest.raises(RuntimeError, match="Model refusal"):
        ChatGPTWrapper(model_name="gpt-test", api_key="sk-test").ask_text("s", "u")


def test_wrapper_retries_connection_errors(fake_openai):
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    fake_openai.outcomes = [APIConnectionError(request=request), completion("[]")]
    assert ChatGPTWrapper(model_name="gpt-test", api_key="sk-test").ask_text("s", "u") == "[]"


def test_wrapper_gives_up_after_three_attempts(fake_openai):
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    fake_openai.outcomes = [APIConnectionError(request=request) for _ in range(3)]
    with pytest.raises(APIConnectionError):
        ChatGPTWrapper(model_name="gpt-test", api_key="sk-test").ask_text("s", "u")


def test_wrapper_does_not_retry_other_errors(fake_openai):
    fake_openai.outcomes = [ValueError("bad request"), completion("[]")]
    with pytest.raises(ValueError):
        ChatGPTWrapper(model_name="gpt-test", api_key="sk-test").ask_text("s", "u")


def test_adapter_requires_credential(monkeypatch, recording_wrapper):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    client = ChatGPTConversationClient(api_key=None)
    with pytest.raises(MissingCredentialError):
        client.generate(THEME, 3, PersonaConfig())
    assert recording_wrapper.instances == []


def test_adapter_builds_one_client_lazily(recording_wrapper):
    client = ChatGPTConversationClient(api_key="sk-test", model_name="gpt-test", structured_output=False)
    assert recording_wrapper.instances == []
    client.generate(THEME, 3, PersonaConfig())
    client.generate(THEME, 2, PersonaConfig())
    assert len(recording_wrapper.instances) == 1
    assert recording_wrapper.instances[0].api_key == "sk-test"
    assert len(recording_wrapper.instances[0].calls) == 2


def test_adapter_renders_persona_into_prompts(recording_wrapper):
    persona = PersonaConfig(user_name="Alex", ai_name="Nova", ai_personality="Dry wit.", conversation_style="")
    client = ChatGPTConversationClient(api_key="sk-test", top_k=40, structured_output=False)
    client.generate(THEME, 5, persona)

    call = recording_wrapper.instances[0].calls[0]
    assert "Alex" in call["system_prompt"] and "Nova" in call["system_prompt"]
    assert "Dry wit." in call["system_prompt"]
    assert "N/A" in call["system_prompt"]
    assert "__" not in call["system_prompt"]
    assert THEME in call["user_prompt"]
    assert "5" in call["user_prompt"]
    assert call["top_k"] == 40
    assert "response_model" not in call


def test_adapter_unwraps_structured_batch(recording_wrapper):
    items = make_items(THEME, 2)
    client = ChatGPTConversationClient(api_key="sk-test")
    client.generate(THEME, 2, PersonaConfig())
    recording_wrapper.instances[0].reply = json.dumps({"conversations": items})

    raw = client.generate(THEME, 2, PersonaConfig())

    assert json.loads(raw) == items
    assert recording_wrapper.instances[0].calls[-1]["response_model"] is ConversationBatch


def test_unwrap_structured_batch_leaves_other_text_alone():
    assert unwrap_structured_batch("not json") == "not json"
    assert unwrap_structured_batch('{"other": 1}') == '{"other": 1}'
    assert unwrap_structured_batch("[1]") == "[1]"


def test_structured_request_passes_the_pydantic_model(fake_openai):
    items = make_items(THEME, 1)
    content = json.dumps({"conversations": items})
    fake_openai.outcomes = [completion(content)]
    llm = ChatGPTWrapper(model_name="gpt-test", api_key="sk-test")

    text = llm.ask_structured_text("s", "u", ConversationBatch, temperature=0.5, top_k=40)

    assert text == content
    call = fake_openai.instances[0].beta.chat.completions.calls[0]
    assert call["response_format"] is ConversationBatch
    assert call["temperature"] == 0.5
    assert call["extra_body"] == {"top_k": 40}
    assert "top_p" not in call


def test_structured_request_raises_on_refusal(fake_openai):
    fake_openai.outcomes = [completion(None, refusal="not allowed")]
    with pytest.raises(RuntimeError, match="Model refusal"):
        ChatGPTWrapper(model_name="gpt-test", api_key="sk-test").ask_structured_text("s", "u", ConversationBatch)


def test_structured_batch_items_still_validate_one_by_one(recording_wrapper):
    good = make_items(THEME, 1)[0]
    reply = json.dumps({"conversations": [good, {"theme": THEME, "conversation": [1, 2]}]})
    client = ChatGPTConversationClient(api_key="sk-test")
    client.llm.reply = reply

    raw = client.generate(THEME, 2, PersonaConfig())

    assert validate_conversations(raw, THEME, "User", "IRIS") == [ConversationItem(**good)]
