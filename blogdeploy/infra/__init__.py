# -----------------------------------------------------------------------------
# INFRASTRUCTURE LAYER
# -----------------------------------------------------------------------------
# Contains low-level wrappers around external processes:
# - GitProvider: subprocess git client with scoped branch switching
# - SiteBuilder: the static site generator invocation
# -----------------------------------------------------------------------------

from .builder import BuildFailedError, SiteBuilder
from .git_client import ContextRestoreError, GitError, GitProvider, PushRejectedError

__all__ = ["BuildFailedError", "SiteBuilder", "ContextRestoreError", "GitError", "GitProvider", "PushRejectedError"]
