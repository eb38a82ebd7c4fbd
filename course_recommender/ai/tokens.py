"""
Credential sources for AI providers.

Providers never read environment variables directly; they ask a
``TokenProvider`` for a bearer token on each request so rotated keys are
picked up without rebuilding the provider.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod

from course_recommender.errors import AIProviderError


class TokenProvider(ABC):
    """Supplies the API credential for a provider request."""

    @abstractmethod
    def get_token(self) -> str:
        """Return a non-empty token.

        Raises:
            AIProviderError: If no credential is available.
        """


class StaticTokenProvider(TokenProvider):
    """Fixed token, mainly for tests and one-off scripts."""

    def __init__(self, token: str) -> None:
        self._token = token

    def get_token(self) -> str:
        if not self._token:
            raise AIProviderError("Static token is empty.")
        return self._token


class EnvTokenProvider(TokenProvider):
    """Reads the token from an environment variable at call time."""

    def __init__(self, env_var: str) -> None:
        self.env_var = env_var

    def get_token(self) -> str:
        token = os.environ.get(self.env_var, "").strip()
        if not token:
            raise AIProviderError(
                f"{self.env_var} is not set. Add it to .env or disable [ai] provider."
            )
        return token
