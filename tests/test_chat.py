import pytest

from perplexity_ai_sdk import (
    AuthenticationError,
    CancellationToken,
    CancelledError,
    RateLimitError,
    Stream,
    ValidationError,
    image_chunk,
    system_message,
    text_chunk,
    user_message,
)

from conftest import FakeSession, chunk_json, make_response, sse

COMPLETION = {
    "id": "cmpl-1",
    "model": "sonar",
    "object": "chat.completion",
    "created": 1234567890,
    "choices": [
        {
            "index": 0,
            "message": {"role": "assistant", "content": "Paris is the capital of France."},
            "finish_reason": "stop",
        }
    ],
    "citations": ["https://en.wikipedia.org/wiki/Paris"],
    "usage": {"prompt_tokens": 9, "completion_tokens": 7, "total_tokens": 16},
}


def test_create_posts_completion_request(make_client):
    session = FakeSession(make_response(200, COMPLETION))
    client = make_client(session)

    completion = client.chat.create(
        [system_message("Be concise."), user_message("What is the capital of France?")],
        model="sonar-pro",
        temperature=0.2,
        search_domain_filter=["wikipedia.org"],
    )

    assert completion["choices"][0]["message"]["content"] == "Paris is the capital of France."
    call = session.calls[0]
    assert call["method"] == "POST"
    assert call["url"] == "https://api.test/chat/completions"
    assert call["json"] == {
        "model": "sonar-pro",
        "messages": [
            {"role": "system", "content": "Be concise."},
            {"role": "user", "content": "What is the capital of France?"},
        ],
        "temperature": 0.2,
        "search_domain_filter": ["wikipedia.org"],
    }


def test_string_message_becomes_user_message(make_client):
    session = FakeSession(make_response(200, COMPLETION))
    make_client(session).chat.create("hello", model="sonar")
    assert session.calls[0]["json"]["messages"] == [{"role": "user", "content": "hello"}]


def test_multimodal_content_is_accepted(make_client):
    session = FakeSession(make_response(200, COMPLETION))
    content = [text_chunk("What is in this picture?"), image_chunk("https://example.com/cat.png")]
    make_client(session).chat.create([user_message(content)], model="sonar")
    assert session.calls[0]["json"]["messages"][0]["content"][1]["image_url"]["url"] == "https://example.com/cat.png"


def test_tools_are_sent(make_client):
    session = FakeSession(make_response(200, COMPLETION))
    tools = [{"type": "function", "function": {"name": "lookup", "parameters": {"type": "object"}}}]
    make_client(session).chat.create("hi", model="sonar", tools=tools, tool_choice="auto")
    body = session.calls[0]["json"]
    assert body["tools"] == tools
    assert body["tool_choice"] == "auto"


def test_extra_headers_are_forwarded(make_client):
    session = FakeSession(make_response(200, COMPLETION))
    make_client(session).chat.create("hi", model="sonar", extra_headers={"X-Trace": "t-1"})
    assert session.calls[0]["headers"]["X-Trace"] == "t-1"


@pytest.mark.parametrize(
    "messages, model",
    [
        ("", "sonar"),
        ([], "sonar"),
        ([{"content": "no role"}], "sonar"),
        (["not a dict"], "sonar"),
        ([{"role": "user", "content": [{"type": "audio", "audio": "x"}]}], "sonar"),
        ([{"role": "user", "content": 42}], "sonar"),
        ("hello", ""),
        ("hello", None),
    ],
)
def test_invalid_requests_are_rejected_locally(make_client, messages, model):
    session = FakeSession(make_response(200, COMPLETION))
    with pytest.raises(ValidationError):
        make_client(session).chat.create(messages, model=model)
    assert session.calls == []


def test_create_refuses_stream_flag(make_client):
    session = FakeSession(make_response(200, COMPLETION))
    with pytest.raises(ValidationError):
        make_client(session).chat.create("hi", model="sonar", stream=True)
    assert session.calls == []


def test_create_retries_rate_limits(make_client):
    session = FakeSession(make_response(429, {"message": "slow down"}), make_response(200, COMPLETION))
    completion = make_client(session).chat.create("hi", model="sonar")
    assert completion["id"] == "cmpl-1"
    assert len(session.calls) == 2


def test_create_gives_up_after_max_retries(make_client):
    session = FakeSession(make_response(429, {"message": "slow down"}))
    with pytest.raises(RateLimitError):
        make_client(session, max_retries=1).chat.create("hi", model="sonar")
    assert len(session.calls) == 2


def test_create_stream(make_client):
    body = sse(chunk_json("Hel"), chunk_json("lo", finish_reason="stop"), "[DONE]")
    session = FakeSession(make_response(200, body, {"X-Request-Id": "stream-1"}))

    with make_client(session).chat.create_stream("hi", model="sonar") as stream:
        assert isinstance(stream, Stream)
        assert stream.request_id == "stream-1"
        assert stream.text() == "Hello"

    call = session.calls[0]
    assert call["json"]["stream"] is True
    assert call["stream"] is True
    assert call["headers"]["Accept"] == "text/event-stream"


def test_create_stream_error_status(make_client):
    session = FakeSession(make_response(401, {"error": {"message": "bad key"}}))
    with pytest.raises(AuthenticationError, match="bad key"):
        make_client(session).chat.create_stream("hi", model="sonar")


def test_create_stream_token_governs_stream_lifetime(make_client):
    body = sse(chunk_json("a"), chunk_json("b"), "[DONE]")
    session = FakeSession(make_response(200, body))
    token = CancellationToken()

    stream = make_client(session).chat.create_stream("hi", model="sonar", cancel=token)
    next(stream)
    token.cancel()
    with pytest.raises(CancelledError):
        next(stream)
    stream.close()
