"""CLI entrypoint for github-push.

Publishes the current directory to a GitHub repository named after it. There
are no required flags; all behaviour is configured through `GITHUB_PUSH_*`
environment variables or a `.env` file.
"""

from __future__ import annotations

import argparse
import logging
import sys
from enum import IntEnum
from pathlib import Path

from pydantic import ValidationError

from github_push import __version__
from github_push.publisher.config import LOG_LEVELS, PushSettings
from github_push.publisher.errors import (
    HomeDirectoryError,
    InvalidInvocationError,
    MissingTokenError,
    TokenInputError,
    WorkingDirectoryError,
)
from github_push.publisher.logging import configure_logging
from github_push.publisher.pipeline import Publisher
from github_push.publisher.secret_store import SecretStore

logger = logging.getLogger(__name__)


class ExitCode(IntEnum):
    OK = 0
    FAILURE = 1
    MISSING_TOKEN = 1
    CONFIG_ERROR = 2
    TOKEN_INPUT_ERROR = 3
    INVALID_INVOCATION = 4
    DIRECTORY_ERROR = 5
    INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="github-push",
        description=(
            "Create a GitHub repository named after the current directory and "
            "force-push the directory to it as a single commit."
        ),
    )
    parser.add_argument("--version", action="version", version=f"github-push {__version__}")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=None,
        help="Override the logging level (default from GITHUB_PUSH_LOG_LEVEL or INFO)",
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default=None,
        help="Override the log output format",
    )
    return parser


def check_invocation(expected: str | None, argv0: str) -> None:
    """Refuse to run under an unexpected program name, when one is configured.

    Raises:
        InvalidInvocationError: If the names differ.
    """
    if not expected:
        return
    actual = Path(argv0).name
    if actual != expected:
        raise InvalidInvocationError(
            f"File name should be: {expected} but it is: {actual}"
        )


def current_directory() -> Path:
    """Return the working directory.

    Raises:
        WorkingDirectoryError: If it cannot be read (e.g. it was deleted).
    """
    try:
        return Path.cwd()
    except OSError as e:
        raise WorkingDirectoryError(f"Error getting current directory: {e}") from e


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = PushSettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your environment or .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return ExitCode.CONFIG_ERROR

    configure_logging(args.log_level or settings.log_level, args.log_format or settings.log_format)

    try:
        check_invocation(settings.expected_program_name, sys.argv[0])

        repo_path = current_directory()
        store = SecretStore(settings.resolve_secret_file(), settings.secret_key_bytes)
        report = Publisher(settings, repo_path=repo_path, secret_store=store).run()

        failed = report.failed_steps
        if failed:
            print(f"Done with {len(failed)} failed step(s), exiting...")
        else:
            print("Done, exiting...")
        return ExitCode.OK

    except InvalidInvocationError as e:
        logger.error(str(e))
        print(str(e), file=sys.stderr)
        return ExitCode.INVALID_INVOCATION

    except TokenInputError as e:
        logger.error(str(e))
        return ExitCode.TOKEN_INPUT_ERROR

    except MissingTokenError as e:
        logger.error(str(e))
        print(str(e), file=sys.stderr)
        return ExitCode.MISSING_TOKEN

    except (HomeDirectoryError, WorkingDirectoryError) as e:
        logger.error(str(e))
        print(str(e), file=sys.stderr)
        return ExitCode.DIRECTORY_ERROR

    except KeyboardInterrupt:
        return ExitCode.INTERRUPTED

    except Exception:
        logger.exception("Run failed")
        return ExitCode.FAILURE


if __name__ == "__main__":
    raise SystemExit(main())
