"""
GitHub GraphQL client
Fetches PR notifications and sends batched notification mutations
"""

import os
import subprocess
from typing import Any, Dict, List, Optional, Tuple

import requests

from ..config import DEFAULT_GITHUB_CONFIG
from ..models import RawNotification, ViewerContext
from .exceptions import (
    AuthRequiredError,
    MissingScopeError,
    RemoteProtocolError,
    ToolingUnavailableError,
    UnknownRemoteError,
)
from .queries import (
    NOTIFICATION_MUTATIONS,
    NOTIFICATIONS_QUERY,
    VIEWER_LOGIN_QUERY,
    approve_mutation,
    notification_mutation,
)

REQUIRED_SCOPE = 'notifications'


def resolve_token() -> str:
    """Find a GitHub token.

    Checks GH_TOKEN and GITHUB_TOKEN first, then asks the gh CLI.

    Raises:
        ToolingUnavailableError: gh is not installed and no token is set
        AuthRequiredError: gh is installed but not logged in
    """
    for var in ('GH_TOKEN', 'GITHUB_TOKEN'):
        token = os.environ.get(var)
        if token:
            return token

    try:
        result = subprocess.run(
            ['gh', 'auth', 'token'],
            capture_output=True,
            text=True,
            timeout=30,
        )
    except FileNotFoundError:
        raise ToolingUnavailableError()
    except subprocess.TimeoutExpired:
        raise UnknownRemoteError('Timed out waiting for `gh auth token`')

    token = result.stdout.strip()
    if result.returncode != 0 or not token:
        raise AuthRequiredError(status_code=None)
    return token


class GitHubClient:
    """
    GitHub GraphQL client

    Usage:
        client = GitHubClient(token=resolve_token())

        raws, viewer = client.fetch_inbox()
        client.mark_as_read(['NT_kwDO...'])
    """

    def __init__(
        self,
        token: str,
        api_url: str = DEFAULT_GITHUB_CONFIG['api_url'],
        timeout: int = DEFAULT_GITHUB_CONFIG['timeout'],
    ):
        self.api_url = api_url
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers['Authorization'] = f'Bearer {token}'
        self.session.headers['Accept'] = 'application/json'
        self.session.headers['User-Agent'] = 'pr-inbox'
        self.granted_scopes: Optional[str] = None

    def fetch_inbox(self) -> Tuple[List[RawNotification], ViewerContext]:
        """Fetch the viewer's notification threads and team memberships

        Returns:
            (raw notifications in API order, viewer context)
        """
        login = self.viewer_login()
        self._require_scope(REQUIRED_SCOPE)

        data = self._request(NOTIFICATIONS_QUERY, {'login': login})
        viewer = data.get('viewer')
        if not isinstance(viewer, dict):
            raise RemoteProtocolError('Response is missing the viewer block')

        threads = viewer.get('notificationThreads')
        nodes = threads.get('nodes') if isinstance(threads, dict) else None
        if not isinstance(nodes, list):
            raise RemoteProtocolError('Response is missing notificationThreads')

        raws = [RawNotification.from_node(node) for node in nodes if isinstance(node, dict)]
        return raws, ViewerContext.from_viewer(viewer)

    def viewer_login(self) -> str:
        """Get the authenticated user's login"""
        data = self._request(VIEWER_LOGIN_QUERY)
        login = (data.get('viewer') or {}).get('login')
        if not login:
            raise AuthRequiredError(status_code=None)
        return login

    def mark_as_read(self, ids: List[str]) -> None:
        self._mutate_notifications('mark_read', ids)

    def mark_as_unread(self, ids: List[str]) -> None:
        self._mutate_notifications('mark_unread', ids)

    def mark_as_done(self, ids: List[str]) -> None:
        self._mutate_notifications('mark_done', ids)

    def unsubscribe(self, ids: List[str]) -> None:
        """Unsubscribe from pull requests (ids are PR node ids, not thread ids)"""
        self._mutate_notifications('unsubscribe', ids)

    def approve(self, ids: List[str]) -> None:
        """Approve pull requests (PR node ids) in a single request"""
        if not ids:
            return
        variables = {f'pr{i}': pr_id for i, pr_id in enumerate(ids)}
        self._request(approve_mutation(len(ids)), variables)

    def send_mutation(self, kind: str, ids: List[str]) -> None:
        """Dispatch a batched mutation by kind (used by the mutation queues)"""
        if kind == 'approve':
            self.approve(ids)
        elif kind in NOTIFICATION_MUTATIONS:
            self._mutate_notifications(kind, ids)
        else:
            raise ValueError(f'Unknown mutation kind: {kind}')

    def _mutate_notifications(self, kind: str, ids: List[str]) -> None:
        if not ids:
            return
        field = NOTIFICATION_MUTATIONS[kind]
        data = self._request(notification_mutation(field), {'ids': ids})
        result = data.get(field)
        if not isinstance(result, dict) or not result.get('success'):
            raise RemoteProtocolError(f'{field} did not report success')

    def _require_scope(self, scope: str) -> None:
        # Fine-grained tokens send no X-OAuth-Scopes header; nothing to check then
        if self.granted_scopes is None:
            return
        granted = {s.strip() for s in self.granted_scopes.split(',') if s.strip()}
        if scope not in granted:
            raise MissingScopeError()

    def _request(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """POST a GraphQL document and return its data block"""
        try:
            response = self.session.post(
                self.api_url,
                json={'query': query, 'variables': variables or {}},
                timeout=self.timeout,
            )
        except requests.Timeout:
            raise UnknownRemoteError(f'Request to {self.api_url} timed out after {self.timeout}s')
        except requests.RequestException as e:
            raise UnknownRemoteError(f'Request to {self.api_url} failed: {e}')

        if 'X-OAuth-Scopes' in response.headers:
            self.granted_scopes = response.headers['X-OAuth-Scopes']

        if response.status_code == 401:
            raise AuthRequiredError()
        if response.status_code == 403 and 'scope' in response.text.lower():
            raise MissingScopeError(status_code=403)
        if response.status_code >= 400:
            raise RemoteProtocolError(
                f'GitHub API returned HTTP {response.status_code}',
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError:
            raise RemoteProtocolError('GitHub API returned a non-JSON response')
        if not isinstance(payload, dict):
            raise RemoteProtocolError('GitHub API returned an unexpected response')

        errors = payload.get('errors')
        if errors:
            self._raise_graphql_errors(errors)

        data = payload.get('data')
        if not isinstance(data, dict):
            raise RemoteProtocolError('GitHub API response has no data')
        return data

    @staticmethod
    def _raise_graphql_errors(errors: Any) -> None:
        if not isinstance(errors, list):
            errors = [errors]
        messages = []
        for error in errors:
            if isinstance(error, dict):
                if error.get('type') == 'INSUFFICIENT_SCOPES':
                    raise MissingScopeError()
                messages.append(str(error.get('message', error)))
            else:
                messages.append(str(error))
        raise RemoteProtocolError(', '.join(messages))
