"""HTTP boundary to the external content-classification service.

``classify`` either returns a parsed classification or raises a
``ModerationError``; it never guesses a verdict. Missing credentials,
timeouts, transport failures, non-2xx responses and malformed bodies all
surface as errors so the gateway can fail closed. One attempt per call,
bounded by ``moderation_timeout_seconds``; no retries.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

import httpx

from trust_engine.config import get_settings
from trust_engine.logging_config import get_logger

logger = get_logger(__name__)

# Numeric confidences below this are treated as borderline
BORDERLINE_CONFIDENCE = 0.5


class ModerationError(Exception):
    """Base class for classification failures."""

    reason = "moderation_error"


class ModerationUnavailableError(ModerationError):
    """The service cannot be called at all (no credential configured)."""

    reason = "moderation_unavailable"


class ModerationServiceError(ModerationError):
    """The call was attempted and failed."""

    reason = "moderation_error"


@dataclass(frozen=True)
class Classification:
    flagged: bool
    confidence: Literal["high", "low"] = "high"
    categories: list[str] = field(default_factory=list)


def _normalize_confidence(raw: Any) -> Literal["high", "low"]:
    if isinstance(raw, str) and raw.lower() in ("high", "low"):
        return raw.lower()  # type: ignore[return-value]
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return "low" if raw < BORDERLINE_CONFIDENCE else "high"
    raise ValueError(f"Unrecognised confidence value: {raw!r}")


def parse_classification(payload: Any) -> Classification:
    """Parse the service body; anything unexpected is a ModerationServiceError."""
    if not isinstance(payload, dict) or not isinstance(payload.get("flagged"), bool):
        raise ModerationServiceError("Classification body missing boolean 'flagged'")

    categories = payload.get("categories") or []
    if isinstance(categories, dict):
        # {category: bool} form
        categories = [name for name, hit in categories.items() if hit]
    if not isinstance(categories, list):
        raise ModerationServiceError("Classification 'categories' must be a list or mapping")

    try:
        confidence = _normalize_confidence(payload.get("confidence", "high"))
    except ValueError as e:
        raise ModerationServiceError(str(e)) from e

    return Classification(
        flagged=payload["flagged"],
        confidence=confidence,
        categories=[str(c) for c in categories],
    )


class ModerationClient:
    """Thin async client for ``classify(text, actor_context)``."""

    def __init__(
        self,
        url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.url = url or settings.moderation_url
        self.api_key = settings.moderation_api_key if api_key is None else api_key
        self.timeout = timeout or settings.moderation_timeout_seconds
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def classify(self, text: str, actor_context: dict[str, Any]) -> Classification:
        if not self.configured:
            logger.error("moderation_credential_missing")
            raise ModerationUnavailableError("Moderation credential is not configured")

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                resp = await client.post(
                    self.url,
                    json={"input": text, "actor": actor_context},
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
                resp.raise_for_status()
                payload = resp.json()
        except httpx.TimeoutException as e:
            logger.warning("moderation_timeout", timeout=self.timeout)
            raise ModerationServiceError(f"Moderation call timed out: {e}") from e
        except httpx.HTTPStatusError as e:
            logger.warning("moderation_http_error", status=e.response.status_code)
            raise ModerationServiceError(f"HTTP {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("moderation_request_failed", error=str(e))
            raise ModerationServiceError(str(e)) from e

        return parse_classification(payload)
