"""Tests for the CI context resolver."""

import pytest

from compass_publish.primitives.errors import ContextError
from compass_publish.runtime.context import load_event_payload, resolve_context


class TestResolveContext:
    """Extracting actors and the repository owner."""

    def test_resolves_authors_and_owner(self, event_payload):
        context = resolve_context(event_payload)

        assert context.repository_owner == "Cali93"
        assert [a.name for a in context.actors] == ["Cali", "Bot"]
        assert context.actors[0].username == "Cali93"
        assert context.actors[1].username is None

    def test_empty_commits_is_valid(self, event_payload):
        event_payload["commits"] = []
        assert resolve_context(event_payload).actors == []

    def test_missing_commits_raises(self, event_payload):
        del event_payload["commits"]
        with pytest.raises(ContextError, match="commits"):
            resolve_context(event_payload)

    def test_commit_without_author_raises(self, event_payload):
        event_payload["commits"].append({"id": "ghi"})
        with pytest.raises(ContextError, match="author"):
            resolve_context(event_payload)

    def test_missing_owner_raises(self, event_payload):
        del event_payload["repository"]["owner"]
        with pytest.raises(ContextError, match="owner.login"):
            resolve_context(event_payload)

    def test_empty_login_raises(self, event_payload):
        event_payload["repository"]["owner"]["login"] = ""
        with pytest.raises(ContextError):
            resolve_context(event_payload)


class TestLoadEventPayload:
    """Reading GITHUB_EVENT_PATH."""

    def test_reads_json_file(self, event_file, event_payload):
        assert load_event_payload(event_file) == event_payload

    def test_unset_path_raises(self):
        with pytest.raises(ContextError, match="GITHUB_EVENT_PATH"):
            load_event_payload(None)

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(ContextError, match="not found"):
            load_event_payload(tmp_path / "nope.json")

    def test_invalid_json_raises(self, tmp_path):
        path = tmp_path / "event.json"
        path.write_text("{not json")
        with pytest.raises(ContextError) as exc_info:
            load_event_payload(path)
        assert exc_info.value.cause is not None

    def test_non_object_raises(self, tmp_path):
        path = tmp_path / "event.json"
        path.write_text("[]")
        with pytest.raises(ContextError, match="object"):
            load_event_payload(path)
