"""Child-to-caregiver placement candidacies."""
from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator, model_validator

from .base import (
    DiscoveryMetadata,
    GenogramModel,
    coerce_enum,
    fold_discovery_fields,
    mapping_or_empty,
    new_id,
)
from .enums import PlacementStatus


class Placement(GenogramModel):
    """A candidate or active placement of a child with a caregiver.

    Placements are leaf records: nothing cascades from them, and a child may
    have several candidates just as a caregiver may be considered for several
    children.
    """

    id: str = Field(default_factory=new_id)
    child_id: str
    caregiver_id: str
    placement_status: PlacementStatus = PlacementStatus.POTENTIAL_TEMPORARY
    placement_type: str = ""
    household_id: str | None = None
    assessment_data: dict[str, Any] = Field(default_factory=dict)
    notes: str = ""
    discovery: DiscoveryMetadata = Field(
        default_factory=DiscoveryMetadata, alias="discoveryMetadata"
    )
    status_changed_at: str | None = None
    created_at: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _fold_discovery(cls, data: Any) -> Any:
        return fold_discovery_fields(data)

    @field_validator("placement_status", mode="before")
    @classmethod
    def _placement_status(cls, value: Any) -> PlacementStatus:
        return coerce_enum(PlacementStatus, value, PlacementStatus.NOT_APPLICABLE)

    @field_validator("assessment_data", mode="before")
    @classmethod
    def _assessment(cls, value: Any) -> Any:
        return mapping_or_empty(value)

    @property
    def is_potential(self) -> bool:
        return self.placement_status.is_potential

    @property
    def is_current(self) -> bool:
        return self.placement_status.is_current

    @property
    def is_option(self) -> bool:
        """Counts toward a child's placement coverage."""
        return self.is_potential or self.is_current
