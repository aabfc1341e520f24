"""Pydantic validation schemas for registering and updating sources.

Used by the registration helpers on both stores so that cadence and result
cap limits are enforced in one place regardless of the backing store.
Out-of-range cadence and cap values are clamped rather than rejected, which
is how the operator-facing registration call has always behaved.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from news_scanner.core.types import SourceKind

#: Minimum minutes between two scans of the same source.
MIN_CADENCE_MINUTES: int = 5

#: Default cadence applied when registration does not specify one.
DEFAULT_CADENCE_MINUTES: int = 30

#: Bounds and default for the per-scan result cap.
MIN_RESULTS: int = 1
MAX_RESULTS: int = 10
DEFAULT_MAX_RESULTS: int = 3


def _clamp_cadence(value: Any) -> Any:
    if value is None:
        return value
    return max(MIN_CADENCE_MINUTES, int(value))


def _clamp_results(value: Any) -> Any:
    if value is None:
        return value
    return min(MAX_RESULTS, max(MIN_RESULTS, int(value)))


def _check_url(value: str) -> str:
    value = value.strip()
    if not value.startswith(("http://", "https://")):
        raise ValueError("url must be an absolute http(s) URL")
    return value


class SourceCreate(BaseModel):
    """Payload for registering a new source.

    Attributes:
        name: Human label.
        url: Absolute http(s) origin URL.  Must be unique across sources.
        kind: One of ``site``, ``social-feed-a``, ``social-feed-b``.
        cadence_minutes: Minutes between scans, clamped to >= 5.
        max_results: Fragments kept per scan, clamped to 1-10.
        is_active: Whether the scheduler should pick the source up.
    """

    model_config = ConfigDict(use_enum_values=False)

    name: str = Field(min_length=1)
    url: str
    kind: SourceKind
    cadence_minutes: int = DEFAULT_CADENCE_MINUTES
    max_results: int = DEFAULT_MAX_RESULTS
    is_active: bool = True

    @field_validator("url")
    @classmethod
    def _validate_url(cls, value: str) -> str:
        return _check_url(value)

    @field_validator("cadence_minutes", mode="before")
    @classmethod
    def _validate_cadence(cls, value: Any) -> Any:
        return _clamp_cadence(value)

    @field_validator("max_results", mode="before")
    @classmethod
    def _validate_results(cls, value: Any) -> Any:
        return _clamp_results(value)


class SourceUpdate(BaseModel):
    """Partial update for an existing source.

    ``last_scanned`` is intentionally absent: only the scheduler writes it.
    """

    name: Optional[str] = Field(default=None, min_length=1)
    url: Optional[str] = None
    kind: Optional[SourceKind] = None
    cadence_minutes: Optional[int] = None
    max_results: Optional[int] = None
    is_active: Optional[bool] = None

    @field_validator("url")
    @classmethod
    def _validate_url(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else _check_url(value)

    @field_validator("cadence_minutes", mode="before")
    @classmethod
    def _validate_cadence(cls, value: Any) -> Any:
        return _clamp_cadence(value)

    @field_validator("max_results", mode="before")
    @classmethod
    def _validate_results(cls, value: Any) -> Any:
        return _clamp_results(value)

    def changes(self) -> dict[str, Any]:
        """Return only the fields that were explicitly set."""
        return self.model_dump(exclude_unset=True, exclude_none=True)
