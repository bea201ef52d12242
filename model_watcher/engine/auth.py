"""Per-provider request header strategies."""

from __future__ import annotations

from typing import Protocol

from ..config import SourceConfig

BASE_HEADERS = {"Content-Type": "application/json", "Accept": "application/json"}


class HeaderStrategy(Protocol):
    """Apply a provider's authentication convention to outgoing headers."""

    def apply(self, source: SourceConfig, credential: str, headers: dict[str, str]) -> None:
        """Mutate headers in place."""


class BearerStrategy:
    """``Authorization: Bearer <key>``, the OpenAI-compatible default."""

    def apply(self, source: SourceConfig, credential: str, headers: dict[str, str]) -> None:
        headers["Authorization"] = f"Bearer {credential}"


class AnthropicStrategy:
    """Anthropic authenticates with ``x-api-key`` and requires a version header."""

    default_version = "2023-06-01"

    def apply(self, source: SourceConfig, credential: str, headers: dict[str, str]) -> None:
        for key in [k for k in headers if k.lower() == "authorization"]:
            del headers[key]
        headers["x-api-key"] = credential
        if not any(k.lower() == "anthropic-version" for k in headers):
            headers["anthropic-version"] = self.default_version


class GitHubStrategy(BearerStrategy):
    """GitHub Models wants the GitHub media type and a pinned API version."""

    api_version = "2022-11-28"

    def apply(self, source: SourceConfig, credential: str, headers: dict[str, str]) -> None:
        super().apply(source, credential, headers)
        headers["Accept"] = "application/vnd.github+json"
        headers["X-GitHub-Api-Version"] = self.api_version


_STRATEGIES: dict[str, HeaderStrategy] = {
    "openai": BearerStrategy(),
    "anthropic": AnthropicStrategy(),
    "github": GitHubStrategy(),
}


def register_strategy(provider: str, strategy: HeaderStrategy) -> None:
    _STRATEGIES[provider.strip().lower()] = strategy


def strategy_for(source: SourceConfig) -> HeaderStrategy:
    return _STRATEGIES.get(source.provider, _STRATEGIES["openai"])


def build_headers(source: SourceConfig, credential: str) -> dict[str, str]:
    """Base headers, then source overrides, then the provider's auth headers."""

    headers = dict(BASE_HEADERS)
    headers.update(source.headers)
    strategy_for(source).apply(source, credential, headers)
    return headers


__all__ = [
    "AnthropicStrategy",
    "BearerStrategy",
    "GitHubStrategy",
    "HeaderStrategy",
    "build_headers",
    "register_strategy",
    "strategy_for",
]
