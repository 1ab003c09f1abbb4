"""
GitHub access for pr-inbox

Example:
    >>> from prinbox.github import GitHubClient, resolve_token
    >>>
    >>> client = GitHubClient(token=resolve_token())
    >>> raws, viewer = client.fetch_inbox()
    >>> client.mark_as_done([raws[0].id])
"""

from .client import GitHubClient, resolve_token
from .exceptions import (
    InboxError,
    AuthRequiredError,
    MissingScopeError,
    ToolingUnavailableError,
    RemoteProtocolError,
    UnknownRemoteError,
)

__all__ = [
    "GitHubClient",
    "resolve_token",
    "InboxError",
    "AuthRequiredError",
    "MissingScopeError",
    "ToolingUnavailableError",
    "RemoteProtocolError",
    "UnknownRemoteError",
]
