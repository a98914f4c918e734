"""Schemas for operator-visible debug artifacts."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel

ArtifactKind = Literal["prompt", "response", "error", "local_plan"]


class DebugArtifact(BaseModel):
    filename: str
    kind: ArtifactKind | Literal["unknown"]
    size_bytes: int
    created_at: datetime


class DebugArtifactListing(BaseModel):
    """Row returned by the operator listing endpoint."""

    id: str
    name: str
    type: str
    size: int
    created: datetime

    @classmethod
    def from_artifact(cls, artifact: DebugArtifact) -> "DebugArtifactListing":
        return cls(
            id=artifact.filename,
            name=artifact.filename,
            type=artifact.kind,
            size=artifact.size_bytes,
            created=artifact.created_at,
        )
