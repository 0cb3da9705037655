#!/usr/bin/env python3
"""Programmatic usage example.

This demonstrates using the publishing components directly:

* save a token to the encrypted token file (without the interactive prompt)
* check whether the current `origin` belongs to the token's owner
* print the git commands a run would execute, with the token redacted

Nothing is pushed and no repository is created.
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Sequence

from github_push.publisher.config import PushSettings
from github_push.publisher.git import GitRunner, owner_from_remote_url
from github_push.publisher.github.client import GitHubClient
from github_push.publisher.logging import configure_logging
from github_push.publisher.pipeline import (
    OwnershipDecision,
    RepositoryTarget,
    build_git_sequence,
    build_push_url,
)
from github_push.publisher.secret_store import SecretStore


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Inspect what github-push would do.")
    parser.add_argument("--path", default=".", help="Directory to inspect (default: .)")
    parser.add_argument(
        "--token",
        default="",
        help="Store this token before inspecting (optional; otherwise the stored one is used)",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = PushSettings()
    configure_logging(settings.log_level, settings.log_format)

    store = SecretStore(settings.resolve_secret_file(), settings.secret_key_bytes)
    if args.token:
        store.store(args.token.strip())
    token = store.load()

    repo_path = Path(args.path).resolve()
    target = RepositoryTarget.from_directory(repo_path)
    git = GitRunner(repo_path, secrets=[token])

    github = GitHubClient(token=token, base_url=settings.github_base_url)
    try:
        login = github.get_authenticated_login()
    finally:
        github.close()

    decision = OwnershipDecision(
        authenticated_login=login,
        remote_owner=owner_from_remote_url(git.remote_url()),
    )

    print(f"Repository: {target.name} ({'private' if target.private else 'public'})")
    print(f"Local history would be {'discarded' if decision.owned else 'kept'}")
    push_url = build_push_url(
        token=token, host=settings.git_host, owner=login, repository=target.name
    )
    for command in build_git_sequence(settings, push_url=push_url):
        print(git.describe(command))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
