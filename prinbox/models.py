"""Data model: raw GraphQL notifications, viewer identity and parsed items.

Raw records are built from the GraphQL response with ``from_node`` helpers
that never raise: a missing or malformed field becomes an empty string,
``None``, ``False`` or an empty tuple.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from .config import StatusCheckState

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed) into an aware datetime."""
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except (ValueError, TypeError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _nodes(value: Any) -> list[dict[str, Any]]:
    """Unwrap a GraphQL connection ``{"nodes": [...]}`` into its dict nodes."""
    nodes = _dict(value).get("nodes")
    if not isinstance(nodes, list):
        return []
    return [n for n in nodes if isinstance(n, dict)]


def _login(value: Any) -> str | None:
    login = _dict(value).get("login")
    return login if isinstance(login, str) and login else None


def _str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _int(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    return value if isinstance(value, int) else 0


# ---------------------------------------------------------------------------
# Raw records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ReviewRequest:
    """A pending review request naming either a user or a team."""
    login: str | None = None
    slug: str | None = None


@dataclass(frozen=True)
class Review:
    author: str | None
    state: str
    on_behalf_of: tuple[str, ...] = ()


@dataclass(frozen=True)
class ReviewComment:
    author: str | None
    created_at: datetime | None
    reply_to_author: str | None = None


@dataclass(frozen=True)
class ReviewThread:
    comments: tuple[ReviewComment, ...] = ()


@dataclass(frozen=True)
class PullRequestSubject:
    id: str = ""
    number: int = 0
    title: str = ""
    url: str = ""
    head_ref: str | None = None
    is_draft: bool = False
    merged: bool = False
    closed: bool = False
    created_at: datetime | None = None
    author: str | None = None
    repository: str = ""
    review_requests: tuple[ReviewRequest, ...] = ()
    status_check_state: str | None = None
    latest_reviews: tuple[Review, ...] = ()
    review_threads: tuple[ReviewThread, ...] = ()

    @classmethod
    def from_node(cls, node: Any) -> PullRequestSubject:
        node = _dict(node)

        requests = []
        for req in _nodes(node.get("reviewRequests")):
            reviewer = _dict(req.get("requestedReviewer"))
            if not reviewer:
                continue
            requests.append(ReviewRequest(
                login=reviewer.get("login") or None,
                slug=reviewer.get("slug") or None,
            ))

        reviews = []
        for review in _nodes(node.get("latestReviews")):
            reviews.append(Review(
                author=_login(review.get("author")),
                state=_str(review.get("state")),
                on_behalf_of=tuple(
                    _str(team.get("slug"))
                    for team in _nodes(review.get("onBehalfOf"))
                    if team.get("slug")
                ),
            ))

        threads = []
        for thread in _nodes(node.get("reviewThreads")):
            comments = tuple(
                ReviewComment(
                    author=_login(comment.get("author")),
                    created_at=parse_timestamp(comment.get("createdAt")),
                    reply_to_author=_login(_dict(comment.get("replyTo")).get("author")),
                )
                for comment in _nodes(thread.get("comments"))
            )
            threads.append(ReviewThread(comments=comments))

        return cls(
            id=_str(node.get("id")),
            number=_int(node.get("number")),
            title=_str(node.get("title")),
            url=_str(node.get("url")),
            head_ref=node.get("headRefName") or None,
            is_draft=bool(node.get("isDraft")),
            merged=bool(node.get("merged")),
            closed=bool(node.get("closed")),
            created_at=parse_timestamp(node.get("createdAt")),
            author=_login(node.get("author")),
            repository=_str(_dict(node.get("repository")).get("nameWithOwner")),
            review_requests=tuple(requests),
            status_check_state=_dict(node.get("statusCheckRollup")).get("state") or None,
            latest_reviews=tuple(reviews),
            review_threads=tuple(threads),
        )


@dataclass(frozen=True)
class RawNotification:
    """One notification thread as returned by the API, before classification."""
    id: str
    unread: bool = False
    done: bool = False
    reason: str = ""
    updated_at: datetime = EPOCH
    subject_type: str | None = None
    subject: PullRequestSubject | None = None

    @property
    def is_pull_request(self) -> bool:
        return self.subject_type == "PullRequest" and self.subject is not None

    @classmethod
    def from_node(cls, node: Any) -> RawNotification:
        node = _dict(node)
        subject_node = node.get("optionalSubject")
        subject_type = _dict(subject_node).get("__typename") or None
        subject = (
            PullRequestSubject.from_node(subject_node)
            if subject_type == "PullRequest"
            else None
        )
        return cls(
            id=_str(node.get("id")),
            unread=bool(node.get("isUnread")),
            done=bool(node.get("isDone")),
            reason=_str(node.get("reason")),
            updated_at=parse_timestamp(node.get("lastUpdatedAt")) or EPOCH,
            subject_type=subject_type,
            subject=subject,
        )


@dataclass(frozen=True)
class ViewerContext:
    """The authenticated user and the team slugs they belong to."""
    login: str
    team_slugs: frozenset[str] = frozenset()

    @classmethod
    def from_viewer(cls, viewer: Any) -> ViewerContext:
        viewer = _dict(viewer)
        slugs = {
            _str(team.get("slug"))
            for org in _nodes(viewer.get("organizations"))
            for team in _nodes(org.get("teams"))
            if team.get("slug")
        }
        return cls(login=_str(viewer.get("login")), team_slugs=frozenset(slugs))


# ---------------------------------------------------------------------------
# Derived records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TeamReview:
    """A teammate's review submitted on behalf of one of the viewer's teams."""
    reviewer: str
    team: str
    state: str


@dataclass(frozen=True)
class ParsedNotification:
    id: str
    subject_id: str
    reason: str
    repo: str
    clean_title: str
    pr_number: int
    url: str
    unread: bool
    updated_at: datetime
    created_at: datetime
    branch: str | None = None
    author: str | None = None
    review_requested_from: str | None = None
    status_check: StatusCheckState | None = None
    is_closed: bool = False
    team_reviewed_by: TeamReview | None = None
    replied_by: str | None = None


@dataclass
class SeenEntry:
    """Local history for one notification thread, persisted by SeenStore."""
    first_seen: str
    last_seen: str
    pr_number: int = 0
    repo: str = ""
    title: str = ""
    unsubscribed: bool = False
    done_history: list[str] = field(default_factory=list)

    @property
    def last_done_at(self) -> datetime | None:
        if not self.done_history:
            return None
        return parse_timestamp(self.done_history[-1])

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "firstSeen": self.first_seen,
            "lastSeen": self.last_seen,
            "prNumber": self.pr_number,
            "repo": self.repo,
            "title": self.title,
        }
        if self.unsubscribed:
            data["unsubscribed"] = True
        if self.done_history:
            data["doneHistory"] = list(self.done_history)
        return data

    @classmethod
    def from_dict(cls, data: Any) -> SeenEntry:
        data = _dict(data)
        history = data.get("doneHistory")
        return cls(
            first_seen=_str(data.get("firstSeen")),
            last_seen=_str(data.get("lastSeen")),
            pr_number=_int(data.get("prNumber")),
            repo=_str(data.get("repo")),
            title=_str(data.get("title")),
            unsubscribed=bool(data.get("unsubscribed")),
            done_history=[h for h in history if isinstance(h, str)] if isinstance(history, list) else [],
        )


@dataclass(frozen=True)
class Tab:
    name: str
    count: int
