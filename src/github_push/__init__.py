"""github-push.

Publishes the current directory to GitHub in one go:
- token kept in an encrypted file in the home directory
- SSH key generated and registered if needed
- repository created, `.gitignore` reconciled, directory force-pushed
"""

__version__ = "0.1.0"

from github_push.publisher.config import PushSettings

__all__ = ["__version__", "PushSettings"]
