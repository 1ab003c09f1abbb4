"""Unit tests for the action handlers behind the keyboard bindings."""

import asyncio
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from prinbox.actions import InboxActions, create_mutation_queues
from prinbox.batcher import flush_pending_mutations
from prinbox.classifier import classify_all
from prinbox.config import MUTATION_KINDS
from prinbox.models import PullRequestSubject, RawNotification, ViewerContext
from prinbox.seen import SeenStore
from prinbox.state import AppState

from .conftest import make_notification

VIEWER = ViewerContext(login="alice", team_slugs=frozenset())


@pytest.fixture
def state(scheduler):
    state = AppState()
    create_mutation_queues(state, MagicMock(), scheduler, debounce=5.0)
    state.replace_notifications([
        make_notification("a", unread=True, minutes_ago=1),
        make_notification("b", unread=False, minutes_ago=2),
    ])
    return state


def _pending(state, kind):
    return state.registry.get(kind).pending


class TestCreateMutationQueues:
    def test_one_queue_per_kind(self, state):
        assert sorted(q.kind for q in state.registry) == sorted(MUTATION_KINDS)

    def test_custom_settled_callback(self, scheduler):
        state = AppState()
        on_settled = MagicMock()
        create_mutation_queues(state, MagicMock(), scheduler, on_settled=on_settled)
        assert all(q._on_settled is on_settled for q in state.registry)


class TestMutatingActions:
    def test_mark_read_patches_and_enqueues(self, state):
        actions = InboxActions(state)
        assert actions.mark_read() is True
        assert state.notifications[0].unread is False
        assert _pending(state, "mark_read") == ["a"]

    def test_mark_read_on_read_item_is_noop(self, state):
        state.ui.selected_index = 1
        assert InboxActions(state).mark_read() is False
        assert _pending(state, "mark_read") == []

    def test_mark_unread(self, state):
        state.ui.selected_index = 1
        assert InboxActions(state).mark_unread() is True
        assert _pending(state, "mark_unread") == ["b"]

    def test_read_unread_read_keeps_last_action(self, state):
        actions = InboxActions(state)
        assert actions.mark_read() is True
        assert actions.mark_unread() is True
        assert actions.mark_read() is True

        assert state.notifications[0].unread is False
        assert _pending(state, "mark_read") == ["a"]
        assert _pending(state, "mark_unread") == ["a"]

        # A refetch before the batches settle replays the latest action last
        state.replace_notifications([
            make_notification("a", unread=True, minutes_ago=1),
            make_notification("b", unread=False, minutes_ago=2),
        ])
        assert state.notifications[0].unread is False

    def test_mark_done_records_history_once_sent(self, state):
        seen_store = MagicMock()
        actions = InboxActions(state, seen_store)
        selected = state.selected_notification()
        assert actions.mark_done() is True
        assert [n.id for n in state.notifications] == ["b"]
        assert _pending(state, "mark_done") == ["a"]
        seen_store.record_done.assert_not_called()

        actions.settle("mark_done", ["a"], ok=True)
        seen_store.record_done.assert_called_once_with(selected)

    def test_failed_done_is_not_recorded(self, state):
        seen_store = MagicMock()
        actions = InboxActions(state, seen_store)
        actions.mark_done()
        actions.settle("mark_done", ["a"], ok=False)
        seen_store.record_done.assert_not_called()
        assert [n.id for n in state.notifications] == ["a", "b"]

    def test_successive_done_removes_each(self, state):
        actions = InboxActions(state)
        actions.mark_done()
        actions.mark_done()
        assert _pending(state, "mark_done") == ["a", "b"]
        assert state.notifications == []

    def test_unsubscribe_uses_pull_request_id(self, state):
        seen_store = MagicMock()
        actions = InboxActions(state, seen_store)
        assert actions.unsubscribe() is True
        assert _pending(state, "unsubscribe") == ["PR_a"]
        assert state.notifications[0].clean_title == "[unsubscribed] Title a"
        actions.settle("unsubscribe", ["PR_a"], ok=True)
        seen_store.record_unsubscribed.assert_called_once()

    def test_unsubscribe_twice_shares_one_batch(self, state):
        seen_store = MagicMock()
        actions = InboxActions(state, seen_store)
        actions.unsubscribe()
        assert actions.unsubscribe() is True
        assert _pending(state, "unsubscribe") == ["PR_a"]
        assert state.notifications[0].clean_title == "[unsubscribed] Title a"

        actions.settle("unsubscribe", ["PR_a"], ok=True)
        assert seen_store.record_unsubscribed.call_count == 1

    def test_approve(self, state):
        assert InboxActions(state).approve() is True
        assert _pending(state, "approve") == ["PR_a"]
        assert state.notifications[0].clean_title == "[approved] Title a"

    def test_nothing_selected(self, scheduler):
        state = AppState()
        create_mutation_queues(state, MagicMock(), scheduler)
        state.replace_notifications([])
        actions = InboxActions(state)
        assert actions.mark_read() is False
        assert actions.mark_done() is False
        assert actions.approve() is False

    def test_seen_store_failure_keeps_commit(self, state):
        seen_store = MagicMock()
        seen_store.record_done.side_effect = OSError("disk full")
        actions = InboxActions(state, seen_store)
        assert actions.mark_done() is True
        actions.settle("mark_done", ["a"], ok=True)
        assert [n.id for n in state.notifications] == ["b"]
        assert state.pending_patches == []

    def test_failed_batch_rolls_back(self, state):
        InboxActions(state).mark_done()
        state.settle("mark_done", ["a"], ok=False)
        assert [n.id for n in state.notifications] == ["a", "b"]


class TestRollbackAndRefetch:
    def _raw(self):
        subject = PullRequestSubject(
            id="PR_1",
            number=7,
            title="Fix thing",
            url="https://github.com/acme/widgets/pull/7",
            repository="acme/widgets",
        )
        return RawNotification(
            id="NT_1",
            unread=True,
            reason="subscribed",
            updated_at=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
            subject_type="PullRequest",
            subject=subject,
        )

    def _setup(self, scheduler, tmp_path, send):
        store = SeenStore(tmp_path / "seen.json")
        state = AppState()
        actions = InboxActions(state, store)
        create_mutation_queues(state, send, scheduler, on_settled=actions.settle)
        state.replace_notifications(classify_all([self._raw()], VIEWER, store.load()))
        return store, state, actions

    def test_failed_unsubscribe_leaves_no_trace(self, scheduler, tmp_path):
        send = MagicMock(side_effect=RuntimeError("502 Bad Gateway"))
        store, state, actions = self._setup(scheduler, tmp_path, send)

        actions.unsubscribe()
        assert state.notifications[0].clean_title == "[unsubscribed] Fix thing"
        asyncio.run(flush_pending_mutations(state.registry))

        assert state.notifications[0].clean_title == "Fix thing"
        state.replace_notifications(classify_all([self._raw()], VIEWER, store.load()))
        assert state.notifications[0].clean_title == "Fix thing"

    def test_successful_unsubscribe_survives_refetch(self, scheduler, tmp_path):
        send = MagicMock()
        store, state, actions = self._setup(scheduler, tmp_path, send)

        actions.unsubscribe()
        asyncio.run(flush_pending_mutations(state.registry))

        send.assert_called_once_with("unsubscribe", ["PR_1"])
        assert store.load()["NT_1"].unsubscribed is True
        state.replace_notifications(classify_all([self._raw()], VIEWER, store.load()))
        assert state.notifications[0].clean_title == "[unsubscribed] Fix thing"

    def test_failed_done_keeps_done_history_empty(self, scheduler, tmp_path):
        send = MagicMock(side_effect=RuntimeError("502 Bad Gateway"))
        store, state, actions = self._setup(scheduler, tmp_path, send)

        actions.mark_done()
        asyncio.run(flush_pending_mutations(state.registry))

        assert [n.id for n in state.notifications] == ["NT_1"]
        assert "NT_1" not in store.load()


class TestOtherActions:
    def test_open_in_browser(self, state):
        opener = MagicMock()
        InboxActions(state, opener=opener).open_in_browser()
        opener.assert_called_once_with("https://github.com/acme/widgets/pull/a")

    def test_refresh_and_quit_callbacks(self, state):
        on_refresh, on_quit = MagicMock(), MagicMock()
        actions = InboxActions(state, on_refresh=on_refresh, on_quit=on_quit)
        actions.refresh()
        actions.quit()
        on_refresh.assert_called_once_with()
        on_quit.assert_called_once_with()

    def test_action_table_names(self, state):
        table = InboxActions(state).action_table()
        assert set(table) == {
            "mark_read", "mark_unread", "mark_done", "unsubscribe", "approve",
            "open_in_browser", "refresh", "quit",
        }
