"""Console entrypoint.

The implementation lives in `github_push.publisher.main`.
"""

from __future__ import annotations

from github_push.publisher.main import main

__all__ = ["main"]


if __name__ == "__main__":
    raise SystemExit(main())
