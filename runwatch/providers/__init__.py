"""
Providers package - remote CI system clients.

Concrete providers are imported from their modules, e.g.
`from runwatch.providers.github import GitHubActionsProvider`.
"""

from runwatch.providers.base import CIProvider

__all__ = ["CIProvider"]
