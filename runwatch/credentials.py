"""
Credential lookup for remote CI hosts.

A CredentialSource hands out the bearer token used for a given host.
Tokens are read-only and may be shared by concurrent calls.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional
import logging

from runwatch.config import Settings
from runwatch.engine.errors import ConfigError


logger = logging.getLogger(__name__)


class CredentialSource(ABC):
    """Yields a bearer token for a host."""
    
    @abstractmethod
    def token_for(self, host: str) -> str:
        """
        Return the token for `host`.
        
        Raises:
            ConfigError: if no token is configured for the host
        """


class StaticCredentialSource(CredentialSource):
    """Credential source backed by a fixed host -> token mapping."""
    
    def __init__(self, tokens: Optional[Dict[str, Optional[str]]] = None):
        self._tokens = {
            host.lower(): token
            for host, token in (tokens or {}).items()
        }
    
    def token_for(self, host: str) -> str:
        token = self._tokens.get(host.lower())
        if not token:
            logger.error(f"No token configured for host '{host}'")
            raise ConfigError(
                f"No GitHub token configured for {host}. "
                f"Set GITHUB_TOKEN (and GITHUB_HOST for GitHub Enterprise)."
            )
        return token


def credentials_from_settings(settings: Settings) -> StaticCredentialSource:
    """Build a credential source from application settings."""
    return StaticCredentialSource({settings.GITHUB_HOST: settings.GITHUB_TOKEN})
