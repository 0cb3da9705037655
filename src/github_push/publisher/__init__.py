"""Publishing pipeline: secret store, SSH key, GitHub client and git steps."""

from github_push.publisher.pipeline import Publisher, PublishReport
from github_push.publisher.secret_store import SecretStore

__all__ = ["Publisher", "PublishReport", "SecretStore"]
