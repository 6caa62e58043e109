"""Tests for completion providers."""

import json
from unittest import mock

import pytest
import requests

from intellisuggest.config import SuggestConfig
from intellisuggest.context import ProviderPrompt
from intellisuggest.errors import (
    AuthMissingError,
    EncodingFailure,
    InvalidResponseError,
    ModelMissingError,
    NetworkError,
    UnavailableError,
)
from intellisuggest.providers.chat import ChatCompletionProvider, COMMANDS_SCHEMA
from intellisuggest.providers.generate import GenerateProvider, parse_lines
from intellisuggest.providers.registry import ProviderRegistry, create_provider


PROMPT = ProviderPrompt(system="system text", user="user text", input_text="gi")


def make_response(payload, status=200):
    response = requests.Response()
    response.status_code = status
    response._content = (
        payload if isinstance(payload, bytes) else json.dumps(payload).encode("utf-8")
    )
    response.headers["Content-Type"] = "application/json"
    return response


def chat_body(commands):
    content = json.dumps({"commands": [{"command": c, "description": "d"} for c in commands]})
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


@pytest.fixture
def http():
    return mock.Mock(spec=requests.Session)


@pytest.fixture
def chat(http):
    config = SuggestConfig(provider="chat", api_key="secret", model="test/model", temperature=0.3)
    return ChatCompletionProvider(config, session=http)


@pytest.fixture
def generate(http):
    config = SuggestConfig(provider="generate", endpoint="http://localhost:11434/", model="llama3.2")
    return GenerateProvider(config, session=http, retry_delay=0)


def sent_json(call):
    return json.loads(call.kwargs["data"].decode("utf-8"))


# Chat-style

def test_chat_extracts_commands_in_order(chat, http):
    """Test extracting commands from a chat response."""
    http.post.return_value = make_response(chat_body(["git status", "git stash"]))

    assert chat.complete(PROMPT) == ["git status", "git stash"]


def test_chat_request_shape(chat, http):
    """Test the chat request URL, headers and body."""
    http.post.return_value = make_response(chat_body([]))

    chat.complete(PROMPT)

    call = http.post.call_args
    assert call.args[0] == chat.config.endpoint
    assert call.kwargs["headers"]["Authorization"] == "Bearer secret"
    body = sent_json(call)
    assert body["model"] == "test/model"
    assert body["temperature"] == 0.3
    assert body["messages"] == [
        {"role": "system", "content": "system text"},
        {"role": "user", "content": "user text"},
    ]
    assert body["response_format"] == {"type": "json_schema", "json_schema": COMMANDS_SCHEMA}


def test_chat_accepts_decoded_content(chat, http):
    """Test content that is already a JSON object."""
    body = {"choices": [{"message": {"content": {"commands": [{"command": "ls -la", "description": ""}]}}}]}
    http.post.return_value = make_response(body)

    assert chat.complete(PROMPT) == ["ls -la"]


def test_chat_missing_key_fails_before_request(http):
    """Test that no request is sent without an API key."""
    provider = ChatCompletionProvider(SuggestConfig(provider="chat", api_key=None), session=http)

    with pytest.raises(AuthMissingError):
        provider.complete(PROMPT)
    http.post.assert_not_called()


@pytest.mark.parametrize("body", [
    {"error": {"message": "rate limited", "code": 429}},
    {"choices": []},
    {"choices": [{"message": {"content": "not json"}}]},
    {"choices": [{"message": {"content": json.dumps({"suggestions": []})}}]},
    {"choices": [{"message": {"content": json.dumps({"commands": [{"description": "x"}]})}}]},
])
def test_chat_invalid_responses(chat, http, body):
    """Test malformed chat responses."""
    http.post.return_value = make_response(body)

    with pytest.raises(InvalidResponseError):
        chat.complete(PROMPT)
    assert http.post.call_count == 1


def test_chat_non_json_body(chat, http):
    """Test a non-JSON error page."""
    http.post.return_value = make_response(b"<html>Bad Gateway</html>", status=502)

    with pytest.raises(InvalidResponseError):
        chat.complete(PROMPT)


def test_chat_http_error_without_error_field(chat, http):
    """Test an HTTP error without an error message."""
    http.post.return_value = make_response({"detail": "nope"}, status=500)

    with pytest.raises(InvalidResponseError):
        chat.complete(PROMPT)


def test_chat_network_failure(chat, http):
    """Test a refused connection."""
    http.post.side_effect = requests.ConnectionError("refused")

    with pytest.raises(NetworkError):
        chat.complete(PROMPT)


def test_unencodable_prompt_is_build_failure(chat, http):
    """Test that an unencodable prompt is never sent."""
    prompt = ProviderPrompt(system="s", user="bad \udcff", input_text="gi")

    with pytest.raises(EncodingFailure):
        chat.complete(prompt)
    http.post.assert_not_called()


# Generate-style

def test_generate_splits_lines(generate, http):
    """Test splitting a generate response into lines."""
    http.post.return_value = make_response({"response": "git status\n\ngit stash\n"})

    assert generate.complete(PROMPT) == ["git status", "git stash"]


def test_generate_request_shape(generate, http):
    """Test the generate request URL and body."""
    http.post.return_value = make_response({"response": ""})

    generate.complete(PROMPT)

    call = http.post.call_args
    assert call.args[0] == "http://localhost:11434/api/generate"
    assert sent_json(call) == {
        "model": "llama3.2",
        "system": "system text",
        "prompt": "user text",
        "temperature": 0.1,
        "stream": False,
    }
    assert "Authorization" not in call.kwargs["headers"]


def test_parse_lines_strips_markup():
    """Test stripping fences, numbering and backticks."""
    text = "```bash\n1. git status\n- git stash\n`git log`\n```"

    assert parse_lines({"response": text}) == ["git status", "git stash", "git log"]


def test_generate_retries_while_loading(generate, http):
    """Test retrying while the model loads."""
    http.post.side_effect = [
        make_response({"error": "loading model"}, status=503),
        make_response({"response": "git status"}),
    ]

    assert generate.complete(PROMPT) == ["git status"]
    assert http.post.call_count == 2


def test_generate_gives_up_after_three_loading_attempts(generate, http):
    """Test the loading retry bound."""
    http.post.return_value = make_response({"error": "loading model"}, status=503)

    with mock.patch("intellisuggest.providers.generate.time.sleep") as sleep:
        with pytest.raises(UnavailableError):
            generate.complete(PROMPT)

    assert http.post.call_count == 3
    assert sleep.call_count == 2


def test_generate_pulls_missing_model_then_retries(generate, http):
    """Test pulling a missing model and retrying once."""
    http.post.side_effect = [
        make_response({"error": 'model "llama3.2" not found, try pulling it first'}, status=404),
        make_response({"status": "success"}),
        make_response({"response": "git status"}),
    ]

    assert generate.complete(PROMPT) == ["git status"]

    urls = [call.args[0] for call in http.post.call_args_list]
    assert urls == [
        "http://localhost:11434/api/generate",
        "http://localhost:11434/api/pull",
        "http://localhost:11434/api/generate",
    ]
    assert sent_json(http.post.call_args_list[1])["name"] == "llama3.2"


def test_generate_model_still_missing_after_pull(generate, http):
    """Test a model still missing after the pull."""
    not_found = {"error": 'model "llama3.2" not found, try pulling it first'}
    http.post.side_effect = [
        make_response(not_found, status=404),
        make_response({"status": "success"}),
        make_response(not_found, status=404),
    ]

    with pytest.raises(ModelMissingError):
        generate.complete(PROMPT)
    assert http.post.call_count == 3


def test_generate_pull_failure(generate, http):
    """Test a failed pull."""
    http.post.side_effect = [
        make_response({"error": 'model "llama3.2" not found'}, status=404),
        make_response({"error": "pull model manifest: file does not exist"}, status=500),
    ]

    with pytest.raises(ModelMissingError):
        generate.complete(PROMPT)


def test_generate_other_error_not_retried(generate, http):
    """Test that other backend errors are not retried."""
    http.post.return_value = make_response({"error": "out of memory"}, status=500)

    with pytest.raises(InvalidResponseError):
        generate.complete(PROMPT)
    assert http.post.call_count == 1


def test_generate_network_failure(generate, http):
    """Test a request timeout."""
    http.post.side_effect = requests.Timeout("timed out")

    with pytest.raises(NetworkError):
        generate.complete(PROMPT)


def test_generate_sends_key_when_configured(http):
    """Test the optional bearer token for generate."""
    config = SuggestConfig(provider="generate", api_key="k")
    provider = GenerateProvider(config, session=http)
    http.post.return_value = make_response({"response": ""})

    provider.complete(PROMPT)

    assert http.post.call_args.kwargs["headers"]["Authorization"] == "Bearer k"


# Registry

def test_registry_auto_discovery():
    """Test provider auto-discovery."""
    registry = ProviderRegistry()
    registry.auto_discover()

    assert registry.names() == ["chat", "generate"]
    assert registry.get_provider_class("chat") is ChatCompletionProvider


def test_registry_creates_configured_provider():
    """Test creating the configured provider."""
    provider = create_provider(SuggestConfig(provider="generate"))

    assert isinstance(provider, GenerateProvider)
    assert provider.description


def test_registry_unknown_provider():
    """Test creating a provider that is not registered."""
    registry = ProviderRegistry()

    with pytest.raises(ValueError):
        registry.create(SuggestConfig(provider="chat"))
