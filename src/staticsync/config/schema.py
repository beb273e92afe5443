"""Configuration schema definitions for path pairs and sync parameters."""

import os
from pathlib import Path
from typing import Any, Tuple
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .settings import get_settings


class PathPair(BaseModel):
    """Two absolute file paths kept in sync with each other."""

    model_config = ConfigDict(frozen=True)

    a: Path = Field(..., description="First file of the pair")
    b: Path = Field(..., description="Second file of the pair")

    @model_validator(mode="before")
    @classmethod
    def coerce_sequence(cls, data: Any) -> Any:
        """Accept ``["/a", "/b"]`` as well as ``{"a": "/a", "b": "/b"}``.

        Elements past the first two are ignored.
        """
        if isinstance(data, (list, tuple)):
            if len(data) < 2:
                raise ValueError(f"A pair needs two paths, got {len(data)}")
            return {"a": data[0], "b": data[1]}
        return data

    @field_validator("a", "b", mode="before")
    @classmethod
    def expand_user(cls, v):
        if isinstance(v, str):
            if not v.strip():
                raise ValueError("Path must not be empty")
            return os.path.expanduser(v)
        return v

    @field_validator("a", "b")
    @classmethod
    def validate_absolute(cls, v: Path) -> Path:
        if not v.is_absolute():
            raise ValueError(f"Path must be absolute: {v}")
        return v

    @model_validator(mode="after")
    def validate_distinct(self) -> "PathPair":
        if os.path.normpath(self.a) == os.path.normpath(self.b):
            raise ValueError(f"Pair lists the same path twice: {self.a}")
        return self

    def swapped(self) -> "PathPair":
        """Return the same pair with A and B exchanged."""
        return PathPair(a=self.b, b=self.a)

    def __str__(self) -> str:
        return f"{self.a} <-> {self.b}"


def _default_interval() -> float:
    return get_settings().sync.interval_seconds


def _default_hash_buffer_size() -> int:
    return get_settings().sync.hash_buffer_size


def _default_once() -> bool:
    return get_settings().sync.once


def _default_max_workers() -> int:
    return get_settings().sync.max_workers


def _default_cancel_poll() -> float:
    return get_settings().sync.cancel_poll_seconds


class SyncConfig(BaseModel):
    """Validated configuration consumed by the reconciler."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    pairs: Tuple[PathPair, ...] = Field(..., alias="files", description="Ordered path pairs")
    interval_seconds: float = Field(
        default_factory=_default_interval, alias="interval", gt=0,
        description="Seconds between reconciliation cycles"
    )
    hash_buffer_size: int = Field(
        default_factory=_default_hash_buffer_size, gt=0,
        description="Read chunk size in bytes used when hashing"
    )
    once: bool = Field(default_factory=_default_once, description="Run a single cycle and stop")
    max_workers: int = Field(
        default_factory=_default_max_workers, ge=1,
        description="Pairs reconciled concurrently within a cycle"
    )
    cancel_poll_seconds: float = Field(
        default_factory=_default_cancel_poll, gt=0,
        description="Upper bound on shutdown latency while sleeping"
    )

    @field_validator("pairs", mode="before")
    @classmethod
    def validate_pairs(cls, v):
        if v is None:
            raise ValueError("'files' must be a list of path pairs")
        if isinstance(v, (str, bytes, dict)):
            raise ValueError("'files' must be a list of path pairs")
        return v

    def override(self, **changes: Any) -> "SyncConfig":
        """Return a re-validated copy with the given fields replaced.

        ``None`` values are ignored so unset CLI flags fall through.
        """
        data = self.model_dump()
        data.update({k: v for k, v in changes.items() if v is not None})
        return SyncConfig(**data)
