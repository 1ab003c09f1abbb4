"""
GitHub client exceptions
"""


class InboxError(Exception):
    """Base exception for all remote errors. The message is shown to the user."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AuthRequiredError(InboxError):
    """Raised when there is no usable GitHub login (401, gh not logged in)"""

    def __init__(self, message: str | None = None, status_code: int | None = 401):
        super().__init__(
            message or (
                "Not logged in to GitHub.\n\n"
                "Run:\n"
                "  gh auth login -s notifications,read:org"
            ),
            status_code=status_code,
        )


class MissingScopeError(InboxError):
    """Raised when the token lacks the notifications scope"""

    def __init__(self, message: str | None = None, status_code: int | None = None):
        super().__init__(
            message or (
                "Missing 'notifications' scope.\n\n"
                "Run:\n"
                "  gh auth refresh -s notifications,read:org"
            ),
            status_code=status_code,
        )


class ToolingUnavailableError(InboxError):
    """Raised when the gh CLI is missing and no token is configured"""

    def __init__(self, message: str | None = None):
        super().__init__(
            message or (
                "GitHub CLI (gh) is not installed.\n\n"
                "Install it from https://cli.github.com, then run:\n"
                "  gh auth login -s notifications,read:org\n\n"
                "Or set GH_TOKEN to a token with the notifications scope."
            )
        )


class RemoteProtocolError(InboxError):
    """Raised when the API answers with errors or a malformed response"""

    pass


class UnknownRemoteError(InboxError):
    """Raised for failures that fit no other category (timeouts, network)"""

    pass
