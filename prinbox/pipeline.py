"""Fetch pipeline: remote fetch -> classify -> seen-store bookkeeping."""

from __future__ import annotations

import logging

from .classifier import classify_all
from .github.client import GitHubClient
from .github.exceptions import InboxError, UnknownRemoteError
from .models import ParsedNotification
from .seen import SeenStore

logger = logging.getLogger(__name__)


def load_inbox(client: GitHubClient, seen_store: SeenStore) -> list[ParsedNotification]:
    """Fetch and classify the inbox.

    Blocking; run it off the event loop. Any failure raises an InboxError
    subclass and nothing is returned, so callers never see a partial list.
    """
    try:
        raws, viewer = client.fetch_inbox()
    except InboxError:
        raise
    except Exception as e:
        logger.exception("Unexpected error while fetching notifications")
        raise UnknownRemoteError(str(e)) from e

    parsed = classify_all(raws, viewer, seen_store.load())

    try:
        seen_store.record_fetch(parsed)
    except OSError:
        logger.warning("Could not update seen file %s", seen_store.path, exc_info=True)

    return parsed
