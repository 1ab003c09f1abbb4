"""Tests for the GitHub GraphQL client, with the HTTP session mocked."""

import subprocess
from unittest.mock import MagicMock, patch

import pytest
import requests

from prinbox.github import (
    AuthRequiredError,
    GitHubClient,
    MissingScopeError,
    RemoteProtocolError,
    ToolingUnavailableError,
    UnknownRemoteError,
    resolve_token,
)


def _response(data=None, status=200, errors=None, headers=None, text="", json_error=False):
    resp = MagicMock()
    resp.status_code = status
    resp.headers = headers or {}
    resp.text = text
    payload = {}
    if data is not None:
        payload["data"] = data
    if errors is not None:
        payload["errors"] = errors
    if json_error:
        resp.json.side_effect = ValueError("Expecting value")
    else:
        resp.json.return_value = payload
    return resp


def _client(*responses):
    client = GitHubClient(token="t0ken", api_url="https://api.example.com/graphql", timeout=5)
    client.session = MagicMock()
    client.session.post.side_effect = list(responses)
    return client


def _sent(client, call=0):
    return client.session.post.call_args_list[call].kwargs["json"]


NOTIFICATION_NODE = {
    "id": "NT_1",
    "isUnread": True,
    "isDone": False,
    "reason": "REVIEW_REQUESTED",
    "lastUpdatedAt": "2024-05-01T12:00:00Z",
    "optionalSubject": {
        "__typename": "PullRequest",
        "id": "PR_1",
        "number": 42,
        "title": "[sc-9] Add caching",
        "url": "https://github.com/acme/widgets/pull/42",
        "headRefName": "feature/cache",
        "isDraft": False,
        "merged": False,
        "closed": False,
        "createdAt": "2024-04-30T09:00:00Z",
        "author": {"login": "bob"},
        "repository": {"nameWithOwner": "acme/widgets"},
        "reviewRequests": {"nodes": [{"requestedReviewer": {"slug": "backend"}}]},
        "statusCheckRollup": {"state": "SUCCESS"},
        "latestReviews": {"nodes": []},
        "reviewThreads": {"nodes": []},
    },
}

VIEWER_BLOCK = {
    "login": "alice",
    "organizations": {"nodes": [{"teams": {"nodes": [{"slug": "backend"}]}}]},
    "notificationThreads": {"nodes": [NOTIFICATION_NODE, {"id": "NT_2", "optionalSubject": {"__typename": "Issue"}}]},
}


class TestClientSetup:
    def test_headers(self):
        client = GitHubClient(token="abc")
        assert client.session.headers["Authorization"] == "Bearer abc"
        assert client.api_url == "https://api.github.com/graphql"
        assert client.timeout == 30


class TestFetchInbox:
    def test_parses_threads_and_teams(self):
        client = _client(
            _response({"viewer": {"login": "alice"}}, headers={"X-OAuth-Scopes": "repo, notifications, read:org"}),
            _response({"viewer": VIEWER_BLOCK}),
        )
        raws, viewer = client.fetch_inbox()

        assert viewer.login == "alice"
        assert viewer.team_slugs == frozenset({"backend"})
        assert [r.id for r in raws] == ["NT_1", "NT_2"]
        first = raws[0]
        assert first.unread is True
        assert first.reason == "REVIEW_REQUESTED"
        assert first.is_pull_request
        assert first.subject.repository == "acme/widgets"
        assert first.subject.review_requests[0].slug == "backend"
        assert first.subject.status_check_state == "SUCCESS"
        assert raws[1].is_pull_request is False
        assert _sent(client, 1)["variables"] == {"login": "alice"}

    def test_missing_notifications_scope(self):
        client = _client(_response({"viewer": {"login": "alice"}}, headers={"X-OAuth-Scopes": "repo"}))
        with pytest.raises(MissingScopeError):
            client.fetch_inbox()

    def test_no_scope_header_is_not_checked(self):
        client = _client(
            _response({"viewer": {"login": "alice"}}),
            _response({"viewer": VIEWER_BLOCK}),
        )
        raws, _ = client.fetch_inbox()
        assert len(raws) == 2

    def test_missing_threads(self):
        client = _client(
            _response({"viewer": {"login": "alice"}}),
            _response({"viewer": {"login": "alice"}}),
        )
        with pytest.raises(RemoteProtocolError):
            client.fetch_inbox()

    def test_no_viewer_login(self):
        client = _client(_response({"viewer": None}))
        with pytest.raises(AuthRequiredError):
            client.fetch_inbox()


class TestRequestErrors:
    def test_unauthorized(self):
        client = _client(_response(status=401))
        with pytest.raises(AuthRequiredError) as exc_info:
            client.viewer_login()
        assert exc_info.value.status_code == 401
        assert "gh auth login" in exc_info.value.message

    def test_forbidden_scope(self):
        client = _client(_response(status=403, text="Your token has not been granted the required scopes"))
        with pytest.raises(MissingScopeError):
            client.viewer_login()

    def test_server_error(self):
        client = _client(_response(status=502))
        with pytest.raises(RemoteProtocolError) as exc_info:
            client.viewer_login()
        assert exc_info.value.status_code == 502

    def test_graphql_errors(self):
        client = _client(_response(errors=[{"message": "Field 'x' doesn't exist"}, {"message": "Second"}]))
        with pytest.raises(RemoteProtocolError) as exc_info:
            client.viewer_login()
        assert exc_info.value.message == "Field 'x' doesn't exist, Second"

    def test_graphql_insufficient_scopes(self):
        client = _client(_response(errors=[{"type": "INSUFFICIENT_SCOPES", "message": "nope"}]))
        with pytest.raises(MissingScopeError):
            client.viewer_login()

    def test_non_json(self):
        client = _client(_response(json_error=True))
        with pytest.raises(RemoteProtocolError):
            client.viewer_login()

    def test_missing_data(self):
        client = _client(_response())
        with pytest.raises(RemoteProtocolError):
            client.viewer_login()

    def test_timeout(self):
        client = _client(requests.Timeout("slow"))
        with pytest.raises(UnknownRemoteError):
            client.viewer_login()

    def test_connection_error(self):
        client = _client(requests.ConnectionError("refused"))
        with pytest.raises(UnknownRemoteError):
            client.viewer_login()


class TestMutations:
    @pytest.mark.parametrize("kind,field", [
        ("mark_read", "markNotificationsAsRead"),
        ("mark_unread", "markNotificationsAsUnread"),
        ("mark_done", "markNotificationsAsDone"),
        ("unsubscribe", "unsubscribeFromNotifications"),
    ])
    def test_notification_batch(self, kind, field):
        client = _client(_response({field: {"success": True}}))
        client.send_mutation(kind, ["a", "b", "c"])
        sent = _sent(client)
        assert field in sent["query"]
        assert sent["variables"] == {"ids": ["a", "b", "c"]}
        assert client.session.post.call_count == 1

    def test_unsuccessful_batch_raises(self):
        client = _client(_response({"markNotificationsAsDone": {"success": False}}))
        with pytest.raises(RemoteProtocolError):
            client.mark_as_done(["a"])

    def test_empty_batch_sends_nothing(self):
        client = _client()
        client.mark_as_read([])
        client.approve([])
        client.session.post.assert_not_called()

    def test_approve_is_one_request(self):
        client = _client(_response({"approve0": {"clientMutationId": None}, "approve1": {"clientMutationId": None}}))
        client.send_mutation("approve", ["PR_1", "PR_2"])
        sent = _sent(client)
        assert sent["variables"] == {"pr0": "PR_1", "pr1": "PR_2"}
        assert sent["query"].count("addPullRequestReview") == 2
        assert "event: APPROVE" in sent["query"]

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            _client().send_mutation("star", ["a"])


class TestResolveToken:
    def test_env_token_wins(self):
        with patch.dict("os.environ", {"GH_TOKEN": "from-env"}, clear=False), \
                patch("prinbox.github.client.subprocess.run") as run:
            assert resolve_token() == "from-env"
        run.assert_not_called()

    def test_gh_cli(self):
        result = MagicMock(returncode=0, stdout="gho_abc\n")
        with patch.dict("os.environ", {}, clear=True), \
                patch("prinbox.github.client.subprocess.run", return_value=result) as run:
            assert resolve_token() == "gho_abc"
        assert run.call_args.args[0] == ["gh", "auth", "token"]

    def test_gh_not_logged_in(self):
        result = MagicMock(returncode=1, stdout="")
        with patch.dict("os.environ", {}, clear=True), \
                patch("prinbox.github.client.subprocess.run", return_value=result):
            with pytest.raises(AuthRequiredError):
                resolve_token()

    def test_gh_missing(self):
        with patch.dict("os.environ", {}, clear=True), \
                patch("prinbox.github.client.subprocess.run", side_effect=FileNotFoundError("gh")):
            with pytest.raises(ToolingUnavailableError) as exc_info:
                resolve_token()
        assert "cli.github.com" in exc_info.value.message

    def test_gh_hangs(self):
        with patch.dict("os.environ", {}, clear=True), \
                patch("prinbox.github.client.subprocess.run",
                      side_effect=subprocess.TimeoutExpired(["gh"], 30)):
            with pytest.raises(UnknownRemoteError):
                resolve_token()
