import pytest

from proof_sdk.schemas import StreamEvent
from proof_sdk.stream import LineDecoder, StreamRelay, parse_chunk, relay_fragments

STREAM = (
    b'{"model":"m","response":"Hel","done":false}\n'
    b'{"model":"m","response":"lo, ","done":false}\n'
    b"\n"
    b'{"model":"m","response":"w\xc3\xb6rld","done":false}\n'
    b'{"model":"m","response":"","done":true,"total_duration":123}\n'
)


def _collect(fragments) -> list[StreamEvent]:
    events: list[StreamEvent] = []
    relay_fragments(fragments, events.append)
    return events


def _tokens(events: list[StreamEvent]) -> str:
    return "".join(event.token for event in events if event.kind == "token")


class TestLineDecoder:
    def test_partial_line_is_kept_until_completed(self):
        decoder = LineDecoder()
        assert decoder.feed(b'{"response":') == []
        assert decoder.pending == b'{"response":'
        assert decoder.feed(b'"hi"}\n{"res') == [b'{"response":"hi"}\n']
        assert decoder.pending == b'{"res'

    def test_multiple_lines_in_one_fragment(self):
        decoder = LineDecoder()
        assert decoder.feed(b"a\nb\nc\n") == [b"a\n", b"b\n", b"c\n"]
        assert decoder.pending == b""

    def test_flush_returns_tail_and_resets(self):
        decoder = LineDecoder()
        decoder.feed(b"a\nbc")
        assert decoder.flush() == [b"bc"]
        assert decoder.flush() == []
        assert decoder.pending == b""


class TestParseChunk:
    def test_token_line(self):
        chunk = parse_chunk(b'{"response":"hi","done":false}\n')
        assert chunk.response_fragment == "hi"
        assert chunk.done is False

    def test_done_line(self):
        chunk = parse_chunk(b'{"done":true}')
        assert chunk.done is True
        assert chunk.response_fragment is None

    @pytest.mark.parametrize("line", [b"", b"   \r\n", b'{"response": "tru', b"[1, 2]\n", b"null\n"])
    def test_unusable_lines_are_dropped(self, line):
        assert parse_chunk(line) is None


class TestStreamRelay:
    def test_every_split_point_yields_the_same_tokens(self):
        expected = _collect([STREAM])
        assert _tokens(expected) == "Hello, wörld"

        for split in range(1, len(STREAM)):
            events = _collect([STREAM[:split], STREAM[split:]])
            assert events == expected, f"split at byte {split}"

    def test_byte_at_a_time(self):
        events = _collect(STREAM[i : i + 1] for i in range(len(STREAM)))
        assert _tokens(events) == "Hello, wörld"
        assert [event.kind for event in events].count("done") == 1

    def test_token_then_done(self):
        events = _collect([b'{"response":"hi","done":false}\n', b'{"done":true}\n'])
        assert events == [StreamEvent(kind="token", token="hi"), StreamEvent(kind="done")]

    def test_done_line_with_response_emits_no_token(self):
        events = _collect([b'{"response":"tail","done":true}\n'])
        assert events == [StreamEvent(kind="done")]

    def test_malformed_line_does_not_abort_stream(self):
        events = _collect([b'{"response":"a"}\n{"response": "tru\n{"response":"b"}\n{"done":true}\n'])
        assert events == [
            StreamEvent(kind="token", token="a"),
            StreamEvent(kind="token", token="b"),
            StreamEvent(kind="done"),
        ]

    def test_stops_after_done(self):
        relay_events: list[StreamEvent] = []
        relay = StreamRelay(relay_events.append)
        assert relay.feed(b'{"response":"a"}\n{"done":true}\n{"response":"late"}\n') is True
        assert relay.feed(b'{"response":"later"}\n') is True
        assert relay_events == [StreamEvent(kind="token", token="a"), StreamEvent(kind="done")]

    def test_relay_fragments_stops_consuming_after_done(self):
        consumed = []

        def fragments():
            for fragment in [b'{"response":"a"}\n', b'{"done":true}\n', b'{"response":"b"}\n']:
                consumed.append(fragment)
                yield fragment

        assert relay_fragments(fragments(), lambda event: None) is True
        assert len(consumed) == 2

    def test_unterminated_final_line_is_decoded(self):
        events = _collect([b'{"response":"a"}\n{"response":"b"}'])
        assert _tokens(events) == "ab"

    def test_stream_without_done(self):
        assert relay_fragments([b'{"response":"a"}\n'], lambda event: None) is False

    def test_event_names_and_payloads(self):
        token = StreamEvent(kind="token", token="x")
        done = StreamEvent(kind="done")
        assert (token.name, token.payload) == ("llm-token", {"token": "x"})
        assert (done.name, done.payload) == ("llm-done", {"done": True})
