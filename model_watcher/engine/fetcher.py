"""HTTP fetching of one catalog source into an :class:`Outcome`."""

from __future__ import annotations

import os
from typing import Mapping

import httpx
import structlog

from ..config import SourceConfig
from ..logging_conf import get_logger
from . import adapters
from .auth import build_headers
from .records import Outcome


class Fetcher:
    """Issue one authenticated GET per source and classify the result.

    The credential environment is injected at construction; nothing below
    this class reads ``os.environ`` directly.
    """

    def __init__(
        self,
        environ: Mapping[str, str] | None = None,
        client: httpx.Client | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.environ = environ if environ is not None else os.environ
        self.logger = logger or get_logger("fetcher")
        self._owns_client = client is None
        self._client = client or httpx.Client(follow_redirects=True)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "Fetcher":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()

    def credential_for(self, source: SourceConfig) -> str | None:
        value = self.environ.get(source.api_key_env)
        if value is None or not value.strip():
            return None
        return value.strip()

    def fetch(self, source: SourceConfig, timeout: float) -> Outcome:
        credential = self.credential_for(source)
        if credential is None:
            return Outcome.failure(
                source.name,
                f"missing credential: environment variable {source.api_key_env} is not set",
                configured=False,
            )

        headers = build_headers(source, credential)
        try:
            response = self._client.get(source.url, headers=headers, timeout=timeout)
        except httpx.HTTPError as exc:
            self.logger.debug("fetch_transport_error", source=source.name, error=str(exc))
            return Outcome.failure(source.name, _describe_error(exc))

        if not response.is_success:
            reason = f"HTTP {response.status_code}: {response.reason_phrase}".rstrip(": ")
            return Outcome.failure(source.name, reason, status_code=response.status_code)

        try:
            payload = response.json()
        except ValueError as exc:
            return Outcome.failure(
                source.name,
                f"Invalid JSON body: {exc}",
                status_code=response.status_code,
            )

        records = adapters.normalize(payload, source)
        if not records:
            shape = adapters.detect_shape(payload, source)
            self.logger.info(
                "normalized_empty",
                source=source.name,
                shape=shape.name if shape else None,
            )
        return Outcome.success(source.name, records, raw=payload, status_code=response.status_code)


def _describe_error(exc: httpx.HTTPError) -> str:
    message = str(exc).strip()
    kind = type(exc).__name__
    return f"{kind}: {message}" if message else kind


__all__ = ["Fetcher"]
