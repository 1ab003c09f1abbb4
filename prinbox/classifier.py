"""Notification classifier.

Turns a raw notification into a ParsedNotification with a single derived
reason. Signals are computed independently and then applied as an ordered
list of (predicate, reason) rules where a later match overwrites an earlier
one. The order below is the priority order, lowest first:

    raw reason < draft < reviewed < merged < team_reviewed < closed
        < replied < needs_review

needs_review is only applied while the viewer has not approved the PR.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from .config import FALLBACK_REASON, REASONS, StatusCheckState
from .models import (
    ParsedNotification,
    PullRequestSubject,
    RawNotification,
    SeenEntry,
    TeamReview,
    ViewerContext,
)

# Leading ticket tags such as "[sc-123]" or "[SC 42]"
_TICKET_TAG_RE = re.compile(r"^\s*\[[a-z]+[- ]?\d+\]\s*", re.IGNORECASE)
_LEADING_PUNCT_RE = re.compile(r"^[\s\-:]+")

UNSUBSCRIBED_PREFIX = "[unsubscribed]"
APPROVED_PREFIX = "[approved]"

_REVIEW_STATES = {"APPROVED", "CHANGES_REQUESTED", "COMMENTED"}


@dataclass(frozen=True)
class Reply:
    replied_by: str
    replied_at: datetime


@dataclass(frozen=True)
class Signals:
    """Everything the reason rules look at, computed once per notification."""
    is_draft: bool
    viewer_reviewed: bool
    viewer_approved: bool
    merged: bool
    team_reviewed_by: TeamReview | None
    is_closed: bool
    new_reply: Reply | None
    review_requested_from: str | None


# Applied in order; a later match overwrites the reason set by an earlier one.
REASON_RULES: list[tuple[Callable[[Signals], bool], str]] = [
    (lambda s: s.is_draft, "draft"),
    (lambda s: s.viewer_reviewed, "reviewed"),
    (lambda s: s.merged, "merged"),
    (lambda s: s.team_reviewed_by is not None, "team_reviewed"),
    (lambda s: s.is_closed, "closed"),
    (lambda s: s.new_reply is not None, "replied"),
    (lambda s: s.review_requested_from is not None and not s.viewer_approved, "needs_review"),
]


def clean_title(title: str, unsubscribed: bool = False) -> str:
    """Strip a leading ticket tag and leading separators from a PR title."""
    cleaned = _TICKET_TAG_RE.sub("", title or "", count=1)
    cleaned = _LEADING_PUNCT_RE.sub("", cleaned).strip()
    if unsubscribed:
        cleaned = f"{UNSUBSCRIBED_PREFIX} {cleaned}"
    return cleaned


def base_reason(raw_reason: str) -> str:
    """Lowercase the raw reason, folding anything unknown into 'other'."""
    reason = (raw_reason or "").lower()
    return reason if reason in REASONS else FALLBACK_REASON


def parse_status_state(state: str | None) -> StatusCheckState | None:
    if not state:
        return None
    if state == "SUCCESS":
        return "success"
    if state in ("FAILURE", "ERROR"):
        return "failure"
    return "pending"


def review_requested_from(subject: PullRequestSubject, viewer: ViewerContext) -> str | None:
    """Return who the review is requested from: a team slug, else the viewer's login.

    A requested team the viewer belongs to wins over a direct request.
    """
    user_match = None
    for request in subject.review_requests:
        if request.slug and request.slug in viewer.team_slugs:
            return request.slug
        if request.login and request.login == viewer.login:
            user_match = request.login
    return user_match


def team_reviewed_by(subject: PullRequestSubject, viewer: ViewerContext) -> TeamReview | None:
    """First review by someone else on behalf of one of the viewer's teams."""
    for review in subject.latest_reviews:
        if review.author == viewer.login:
            continue
        for team in review.on_behalf_of:
            if team in viewer.team_slugs:
                return TeamReview(
                    reviewer=review.author or "unknown",
                    team=team,
                    state=review.state,
                )
    return None


def latest_reply_to(subject: PullRequestSubject, login: str) -> Reply | None:
    """Newest comment by someone else that replies to one of ``login``'s comments."""
    latest = None
    for thread in subject.review_threads:
        for comment in thread.comments:
            if comment.reply_to_author != login or comment.author == login:
                continue
            if comment.created_at is None:
                continue
            if latest is None or comment.created_at > latest.replied_at:
                latest = Reply(replied_by=comment.author or "unknown", replied_at=comment.created_at)
    return latest


def _new_reply(reply: Reply | None, seen_entry: SeenEntry | None) -> Reply | None:
    # Equal timestamps count as already handled.
    if reply is None:
        return None
    last_done_at = seen_entry.last_done_at if seen_entry else None
    if last_done_at is None or reply.replied_at > last_done_at:
        return reply
    return None


def compute_signals(
    subject: PullRequestSubject,
    viewer: ViewerContext,
    seen_entry: SeenEntry | None = None,
) -> Signals:
    own_states = {r.state for r in subject.latest_reviews if r.author == viewer.login}
    return Signals(
        is_draft=subject.is_draft,
        viewer_reviewed=bool(own_states & _REVIEW_STATES),
        viewer_approved="APPROVED" in own_states,
        merged=subject.merged,
        team_reviewed_by=team_reviewed_by(subject, viewer),
        is_closed=subject.closed and not subject.merged,
        new_reply=_new_reply(latest_reply_to(subject, viewer.login), seen_entry),
        review_requested_from=review_requested_from(subject, viewer),
    )


def resolve_reason(raw_reason: str, signals: Signals) -> str:
    reason = base_reason(raw_reason)
    for predicate, rule_reason in REASON_RULES:
        if predicate(signals):
            reason = rule_reason
    return reason


def classify(
    raw: RawNotification,
    viewer: ViewerContext,
    seen_entry: SeenEntry | None = None,
) -> ParsedNotification | None:
    """Classify one notification.

    Returns None for notifications already marked done and for subjects that
    are not pull requests.
    """
    subject = raw.subject
    if raw.done or subject is None or not raw.is_pull_request:
        return None

    signals = compute_signals(subject, viewer, seen_entry)
    reason = resolve_reason(raw.reason, signals)

    return ParsedNotification(
        id=raw.id,
        subject_id=subject.id,
        reason=reason,
        repo=subject.repository,
        clean_title=clean_title(subject.title, unsubscribed=bool(seen_entry and seen_entry.unsubscribed)),
        pr_number=subject.number,
        url=subject.url,
        unread=raw.unread,
        updated_at=raw.updated_at,
        created_at=subject.created_at or raw.updated_at,
        branch=subject.head_ref,
        author=subject.author,
        review_requested_from=signals.review_requested_from,
        status_check=parse_status_state(subject.status_check_state),
        is_closed=signals.is_closed,
        team_reviewed_by=signals.team_reviewed_by,
        replied_by=signals.new_reply.replied_by if signals.new_reply else None,
    )


def classify_all(
    raws: Iterable[RawNotification],
    viewer: ViewerContext,
    seen: Mapping[str, SeenEntry] | None = None,
) -> list[ParsedNotification]:
    """Classify a whole fetch, dropping done and non-PR notifications."""
    seen = seen or {}
    parsed = []
    for raw in raws:
        notification = classify(raw, viewer, seen.get(raw.id))
        if notification is not None:
            parsed.append(notification)
    return parsed
