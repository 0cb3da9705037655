"""GitHub API client wrapper.

Wraps the three calls publishing needs: who am I, add an SSH key and create a
repository. Key and repository creation go through a plain requests session so
the payload and the "201 Created" success check stay explicit; the user lookup
goes through PyGithub.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import requests
from github import Auth, Github, GithubException

from github_push.publisher.errors import GitHubAPIError

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = 30


@dataclass(frozen=True, slots=True)
class CreatedRepository:
    """Minimal repository metadata returned from GitHub."""

    full_name: str
    html_url: str | None
    private: bool


class GitHubClient:
    """Small wrapper around requests and PyGithub for the publishing calls."""

    def __init__(
        self,
        *,
        token: str,
        base_url: str = "https://api.github.com",
        session: requests.Session | None = None,
        github_api: Github | None = None,
    ) -> None:
        if not token:
            raise ValueError("GitHub token is required")

        self._rest_base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
                "User-Agent": "github-push",
            }
        )
        # One attempt per call, no automatic retries.
        self._github = github_api or Github(
            auth=Auth.Token(token), base_url=self._rest_base_url, retry=None
        )

    def _url(self, path: str) -> str:
        return f"{self._rest_base_url}/{path.lstrip('/')}"

    def _post_expect_created(self, path: str, payload: dict[str, Any], *, action: str) -> dict[str, Any]:
        url = self._url(path)
        try:
            resp = self._session.post(url, json=payload, timeout=REQUEST_TIMEOUT_SECONDS)
        except requests.RequestException as e:
            raise GitHubAPIError(f"Failed to {action}: {e}") from e

        if resp.status_code != 201:
            raise GitHubAPIError(
                f"Failed to {action}",
                status_code=resp.status_code,
                body=resp.text,
            )

        try:
            data = resp.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    def get_authenticated_login(self) -> str:
        """Return the login of the token's owner.

        Raises:
            GitHubAPIError: If the lookup fails.
        """
        try:
            login = self._github.get_user().login
        except GithubException as e:
            raise GitHubAPIError(
                "Failed to get user info", status_code=e.status, body=str(e.data)
            ) from e
        except requests.RequestException as e:
            raise GitHubAPIError(f"Failed to get user info: {e}") from e

        if not isinstance(login, str) or not login.strip():
            raise GitHubAPIError("Failed to get user info: response has no login")
        return login

    def add_ssh_key(self, *, title: str, key: str) -> None:
        """Register a public SSH key with the authenticated account.

        Raises:
            GitHubAPIError: Unless GitHub answers 201 Created.
        """
        self._post_expect_created("user/keys", {"title": title, "key": key}, action="add SSH key")
        logger.info("SSH key added", extra={"title": title})

    def create_repository(
        self,
        *,
        name: str,
        description: str = "",
        private: bool = False,
    ) -> CreatedRepository:
        """Create a repository owned by the authenticated account.

        Empty descriptions and public visibility are left out of the payload.

        Raises:
            GitHubAPIError: Unless GitHub answers 201 Created (an existing
                repository answers 422).
        """
        if not name.strip():
            raise ValueError("Repository name is required")

        payload: dict[str, Any] = {"name": name}
        if description:
            payload["description"] = description
        if private:
            payload["private"] = True

        data = self._post_expect_created("user/repos", payload, action="create repository")

        full_name = data.get("full_name")
        html_url = data.get("html_url")
        created = CreatedRepository(
            full_name=full_name if isinstance(full_name, str) else name,
            html_url=html_url if isinstance(html_url, str) else None,
            private=bool(data.get("private", private)),
        )
        logger.info(
            "Repository created",
            extra={"repository": created.full_name, "private": created.private},
        )
        return created

    def close(self) -> None:
        """Close the underlying HTTP connections."""
        self._session.close()
        self._github.close()
