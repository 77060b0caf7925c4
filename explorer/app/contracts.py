"""Immutable data contracts shared between the canvas and the host application."""
from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _FrozenBaseModel(BaseModel):
    """Base model enforcing immutability after creation."""

    model_config = ConfigDict(frozen=True)


class ResourceIdPart(_FrozenBaseModel):
    """One ``{type, id}`` segment of a resource path."""

    type: str = Field(..., min_length=1)
    id: str = Field(..., min_length=1)


ResourceId = Tuple[ResourceIdPart, ...]


def resource_id(*parts: Tuple[str, str]) -> ResourceId:
    """Build a resource id from ``(type, id)`` pairs ordered root first.

    Args:
        *parts: Segments from the root ancestor down to the resource itself.

    Returns:
        ResourceId: Tuple of immutable segments.

    Raises:
        ValueError: If no segments are supplied.
    """
    if not parts:
        raise ValueError("resource id requires at least one segment")
    return tuple(ResourceIdPart(type=part_type, id=part_id) for part_type, part_id in parts)


def node_id_from_resource_id(value: Sequence[ResourceIdPart]) -> str:
    """Return the canvas node id string for a resource id."""

    return "".join(f"::{part.type}::{part.id}" for part in value)


def resource_type_of(value: Optional[Sequence[ResourceIdPart]]) -> Optional[str]:
    """Return the type of the terminal segment used to classify telemetry."""

    if not value:
        return None
    return value[-1].type


class ResourceEvent(_FrozenBaseModel):
    """An observed event where a principal acted on a resource."""

    type: str = Field(..., min_length=1)
    principal: ResourceId
    resource: ResourceId
    first_seen_at: Optional[datetime] = None
    last_seen_at: Optional[datetime] = None

    @field_validator("principal", "resource")
    @classmethod
    def _ensure_non_empty(cls, value: ResourceId) -> ResourceId:
        if not value:
            raise ValueError("resource ids must contain at least one segment")
        return value


class EnvironmentTag(_FrozenBaseModel):
    """Environment label attached to a resource.

    Tags with ``inherited_from`` set come from an ancestor resource and are
    read-only on the descendant.
    """

    name: str = Field(..., min_length=1)
    color_index: int = Field(0, ge=0)
    inherited_from: Optional[ResourceId] = None

    @property
    def inherited(self) -> bool:
        return self.inherited_from is not None
