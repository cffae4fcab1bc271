import io

import pytest

from perplexity_ai_sdk import APIDecodeError, Event, SSEDecoder


def decoder(text):
    return SSEDecoder(io.BytesIO(text.encode("utf-8") if isinstance(text, str) else text))


def test_single_data_event():
    assert decoder("data: hello world\n\n").decode() == Event(data="hello world")


def test_error_event():
    event = decoder("event: error\ndata: oops\n\n").decode()
    assert event.event == "error"
    assert event.data == "oops"
    assert event.is_error()
    assert not event.is_done()


def test_done_marker():
    event = decoder("data: [DONE]\n\n").decode()
    assert event.is_done()
    assert not event.is_error()


def test_multiline_data_is_joined_with_newlines():
    original = Event(data="first line\nsecond line\nthird line")
    decoded = decoder(original.encode()).decode_all()
    assert decoded == [original]


def test_comments_and_fieldless_lines_are_ignored():
    stream = ": keep-alive\nnonsense\ndata: a\n: another comment\ndata: b\n\n"
    assert decoder(stream).decode_all() == [Event(data="a\nb")]


def test_crlf_line_endings():
    event = decoder("event: update\r\nid: 7\r\ndata: x\r\n\r\n").decode()
    assert event == Event(event="update", data="x", id="7")


def test_blank_lines_between_events_are_skipped():
    events = decoder("\n\n\ndata: one\n\n\n\ndata: two\n\n").decode_all()
    assert [e.data for e in events] == ["one", "two"]


def test_event_with_only_an_id_is_emitted():
    event = decoder("id: 42\n\n").decode()
    assert event.id == "42"
    assert event.data == ""


def test_only_one_leading_space_is_stripped():
    assert decoder("data:  padded\n\n").decode().data == " padded"
    assert decoder("data:tight\n\n").decode().data == "tight"


def test_value_may_contain_colons():
    assert decoder('data: {"a": "b:c"}\n\n').decode().data == '{"a": "b:c"}'


def test_retry_field():
    assert decoder("retry: 3000\ndata: x\n\n").decode().retry == 3000
    assert decoder("retry: soon\ndata: x\n\n").decode().retry is None


def test_end_of_input_flushes_pending_data():
    d = decoder("data: partial\n")
    assert d.decode() == Event(data="partial")
    assert d.decode() is None


def test_unterminated_last_line_is_processed():
    d = decoder("data: first\n\ndata: [DONE]")
    assert d.decode().data == "first"
    assert d.decode().is_done()
    assert d.decode() is None


def test_end_of_stream_is_repeatable():
    d = decoder("data: only\n\n")
    assert d.decode().data == "only"
    assert d.decode() is None
    assert d.decode() is None


def test_empty_input():
    assert decoder("").decode_all() == []


def test_events_split_across_chunks():
    raw = "data: héllo\n\nevent: error\ndata: bad\n\n".encode("utf-8")
    # One byte at a time, splitting the multi-byte character too.
    chunks = [raw[i:i + 1] for i in range(len(raw))]
    events = list(SSEDecoder(chunks))
    assert events == [Event(data="héllo"), Event(event="error", data="bad")]


def test_invalid_utf8_is_a_decode_error():
    with pytest.raises(APIDecodeError):
        SSEDecoder([b"data: \xff\xfe\n\n"]).decode()


def test_event_json():
    assert Event(data='{"id": "x"}').json() == {"id": "x"}
    with pytest.raises(APIDecodeError):
        Event(data="").json()
    with pytest.raises(APIDecodeError):
        Event(data="{not json").json()
