"""
Tests for Session Builder

Tests JSONL decoding, metadata collection and end-to-end Session assembly
from transcript text.
"""

import json

import pytest


SESSION_ID = "0b5c2f6e-1111-2222-3333-444455556666"


def jsonl(*entries):
    return "\n".join(json.dumps(e) for e in entries)


@pytest.fixture
def transcript():
    """A short session: prompt, tool work, a correction, commit and push"""
    base = {"sessionId": SESSION_ID, "cwd": "/home/dev/app", "gitBranch": "feature/KUL-12-auth"}
    return jsonl(
        {**base, "type": "user", "timestamp": "2025-03-01T09:00:00Z",
         "message": {"role": "user", "content": "Implement login for KUL-12"}},
        {**base, "type": "assistant", "timestamp": "2025-03-01T09:01:00Z",
         "message": {"role": "assistant", "content": [
             {"type": "tool_use", "name": "Read", "input": {"file_path": "/home/dev/app/src/auth/login.py"}},
         ], "usage": {"input_tokens": 100, "output_tokens": 20}}},
        {**base, "type": "user", "timestamp": "2025-03-01T09:05:00Z",
         "message": {"role": "user", "content": "Use the existing session helper instead"}},
        {**base, "type": "assistant", "timestamp": "2025-03-01T09:08:00Z",
         "message": {"role": "assistant", "content": [
             {"type": "tool_use", "name": "Bash", "input": {"command": 'git commit -m "KUL-12: add login"'}},
         ], "usage": {"output_tokens": 30, "cache_read_input_tokens": 50}}},
        {**base, "type": "assistant", "timestamp": "2025-03-01T09:10:00Z",
         "message": {"role": "assistant", "content": [
             {"type": "tool_use", "name": "Bash", "input": {"command": "git push origin feature/KUL-12-auth"}},
         ]}},
        {**base, "type": "summary", "summary": "Login work"},
    )


class TestParseJsonl:
    """Tests for parse_jsonl_content"""

    def test_skips_malformed_and_blank_lines(self):
        from trustmap.parser.session_builder import parse_jsonl_content

        content = '{"type": "user"}\n\nnot json\n[1, 2]\n{"type": "assistant"}\n'
        entries = parse_jsonl_content(content)

        assert entries == [{"type": "user"}, {"type": "assistant"}]

    @pytest.mark.parametrize("content", ["", "   \n  "])
    def test_empty(self, content):
        from trustmap.parser.session_builder import parse_jsonl_content

        assert parse_jsonl_content(content) == []


class TestSessionMetadata:
    """Tests for extract_session_metadata"""

    def test_file_stem_is_id_and_embedded_id_is_parent(self):
        from trustmap.parser.session_builder import extract_session_metadata

        entries = [
            {"sessionId": "parent-1", "timestamp": "2025-01-01T10:05:00Z", "cwd": "/p"},
            {"sessionId": "parent-1", "timestamp": "2025-01-01T10:00:00Z", "gitBranch": "main"},
        ]
        metadata = extract_session_metadata(entries, "/logs/-p/child-2.jsonl")

        assert metadata["id"] == "child-2"
        assert metadata["parent_session_id"] == "parent-1"
        assert metadata["start_time"] == "2025-01-01T10:00:00Z"
        assert metadata["end_time"] == "2025-01-01T10:05:00Z"
        assert metadata["folder"] == "/p"
        assert metadata["branch"] == "main"

    def test_same_embedded_id_has_no_parent(self):
        from trustmap.parser.session_builder import extract_session_metadata

        metadata = extract_session_metadata([{"sessionId": "abc"}], "abc.jsonl")

        assert metadata["id"] == "abc"
        assert metadata["parent_session_id"] is None

    def test_without_path_or_timestamps(self):
        from trustmap.parser.session_builder import extract_session_metadata

        metadata = extract_session_metadata([{"type": "user"}])

        assert metadata["id"] == "unknown"
        assert metadata["start_time"] == ""
        assert metadata["end_time"] == ""
        assert metadata["branch"] is None


class TestCompaction:
    """Tests for truncate_content and compact_entry"""

    def test_truncate_string(self):
        from trustmap.parser.session_builder import truncate_content

        assert truncate_content("abcdef", 3) == "abc..."
        assert truncate_content("abc", 3) == "abc"

    def test_truncate_text_items(self):
        from trustmap.parser.session_builder import truncate_content

        items = [{"type": "text", "text": "abcdef"}, {"type": "tool_use", "name": "Bash"}]
        assert truncate_content(items, 2) == [
            {"type": "text", "text": "ab..."},
            {"type": "tool_use", "name": "Bash"},
        ]

    def test_compact_keeps_ticket_ids_past_the_cut(self):
        from trustmap.parser.session_builder import compact_entry

        entry = {"type": "user", "message": {"role": "user", "content": "x" * 600 + " ENG-9"}}
        compacted = compact_entry(entry, 500)

        assert compacted["_extractedTicketIds"] == ["ENG-9"]
        assert len(compacted["message"]["content"]) == 503
        # Original untouched
        assert len(entry["message"]["content"]) == 606
        assert "_extractedTicketIds" not in entry


class TestBuildSession:
    """Tests for parse_session_from_content and build_session"""

    def test_parse_session(self, transcript):
        from trustmap.parser.session_builder import parse_session_from_content

        parsed = parse_session_from_content(transcript, "/logs/app/s-1.jsonl")

        assert parsed.id == "s-1"
        assert parsed.parent_session_id == SESSION_ID
        assert parsed.total_tokens == 200
        assert len(parsed.entries) == 6

    def test_parse_empty_content(self):
        from trustmap.parser.session_builder import parse_session_from_content

        assert parse_session_from_content("") is None

    def test_build_session(self, transcript):
        from trustmap.parser.session_builder import build_session_from_content
        from trustmap.common.schemas import EventType, TicketRelationship

        session = build_session_from_content(transcript, f"{SESSION_ID}.jsonl")

        assert session.id == SESSION_ID
        assert session.parent_session_id is None
        assert session.folder == "/home/dev/app"
        assert session.branch == "feature/KUL-12-auth"
        assert session.duration_ms == 600000
        assert [e.type for e in session.events] == [
            EventType.USER_MESSAGE,
            EventType.TOOL_CALL,
            EventType.USER_MESSAGE,
            EventType.GIT_OP,
            EventType.GIT_OP,
        ]

        assert len(session.outcomes.commits) == 1
        assert session.outcomes.commits[0].event_index == 3
        assert session.outcomes.pushes[0].branch == "feature/KUL-12-auth"

        assert session.linear_ticket_id == "KUL-12"
        assert session.ticket_references[0].relationship == TicketRelationship.WORKED

        assert session.events[3].tags[0].type == "commit"
        assert session.events[0].tags[0].type == "ticket_mentioned"

    def test_build_session_with_annotations(self, transcript):
        from trustmap.parser.session_builder import build_session, parse_session_from_content
        from trustmap.common.schemas import Annotation, AnnotationType

        parsed = parse_session_from_content(transcript)
        annotations = [Annotation(type=AnnotationType.REWORK, summary="Redid the helper")]
        session = build_session(parsed, annotations)

        assert session.annotations == annotations
        assert session.annotations is not annotations
