"""Tests for the fetch -> classify -> seen-store pipeline."""

from unittest.mock import MagicMock

import pytest

from prinbox.github.exceptions import AuthRequiredError, UnknownRemoteError
from prinbox.models import PullRequestSubject, RawNotification, ViewerContext
from prinbox.pipeline import load_inbox
from prinbox.seen import SeenStore


def _raw(id, reason="mention", done=False):
    return RawNotification(
        id=id,
        unread=True,
        done=done,
        reason=reason,
        subject_type="PullRequest",
        subject=PullRequestSubject(id=f"PR_{id}", number=1, title="[sc-1] Fix", repository="acme/widgets"),
    )


def _client(raws):
    client = MagicMock()
    client.fetch_inbox.return_value = (raws, ViewerContext(login="alice"))
    return client


class TestLoadInbox:
    def test_classifies_and_records(self, tmp_path):
        store = SeenStore(tmp_path / "seen.json", clock=lambda: "2024-05-01T12:00:00Z")
        parsed = load_inbox(_client([_raw("NT_1"), _raw("NT_2", done=True)]), store)
        assert [(p.id, p.reason, p.clean_title) for p in parsed] == [("NT_1", "mention", "Fix")]
        assert set(store.load()) == {"NT_1"}

    def test_uses_seen_history(self, tmp_path):
        store = SeenStore(tmp_path / "seen.json", clock=lambda: "x")
        store.record_unsubscribed(load_inbox(_client([_raw("NT_1")]), store)[0])
        parsed = load_inbox(_client([_raw("NT_1")]), store)
        assert parsed[0].clean_title == "[unsubscribed] Fix"

    def test_inbox_errors_propagate(self, tmp_path):
        client = MagicMock()
        client.fetch_inbox.side_effect = AuthRequiredError()
        with pytest.raises(AuthRequiredError):
            load_inbox(client, SeenStore(tmp_path / "seen.json"))

    def test_unexpected_errors_are_wrapped(self, tmp_path):
        client = MagicMock()
        client.fetch_inbox.side_effect = KeyError("viewer")
        with pytest.raises(UnknownRemoteError):
            load_inbox(client, SeenStore(tmp_path / "seen.json"))

    def test_seen_write_failure_is_not_fatal(self):
        store = MagicMock()
        store.load.return_value = {}
        store.record_fetch.side_effect = OSError("read-only")
        parsed = load_inbox(_client([_raw("NT_1")]), store)
        assert [p.id for p in parsed] == ["NT_1"]
