"""Placement Schemas — discriminated configuration for adding a full set to a binder.

Invariants:
    - placement is keyed by binder_placement ("replace" | "start" | "end")
    - buffer_pages exists only on start/end and is >= 0
    - variant_copies >= 1; ignored when include_variants is False
    - ReplacePlacement.clear_confirmed must be True before a commit may clear the binder

Design Decisions:
    - Discriminated union over one loose dict: a "replace" config cannot carry
      buffer_pages and a "start" config cannot carry clear_confirmed
    - clear_confirmed is separate from capacity math: previewing "would it fit
      after clearing" never requires the caller to agree to clear
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from binder_planner.core.domain_types import BinderPlacement, VariantOrder


class VariantOptions(BaseModel):
    """How generated variants are produced and ordered."""
    model_config = ConfigDict(frozen=True)

    include_variants: bool = False
    variant_copies: int = Field(1, ge=1, le=10)
    variant_order: VariantOrder = VariantOrder.INTERLEAVED

    @property
    def effective_copies(self) -> int:
        return self.variant_copies if self.include_variants else 0


class ReplacePlacement(BaseModel):
    """Clear the binder, then write the set from position 0."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    binder_placement: Literal["replace"] = "replace"
    clear_confirmed: bool = False


class StartPlacement(BaseModel):
    """Write the set from position 0, pushing existing items forward."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    binder_placement: Literal["start"] = "start"
    # Empty card-pages between the new block and the shifted original content
    buffer_pages: int = Field(0, ge=0, le=100)


class EndPlacement(BaseModel):
    """Write the set on the first card-page after existing content."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    binder_placement: Literal["end"] = "end"
    # Empty card-pages between existing content and the new block
    buffer_pages: int = Field(0, ge=0, le=100)


PlacementMode = Annotated[
    Union[ReplacePlacement, StartPlacement, EndPlacement],
    Field(discriminator="binder_placement"),
]


class SetPlacementConfig(BaseModel):
    """Full configuration of a set-add operation."""
    model_config = ConfigDict(frozen=True)

    variants: VariantOptions = Field(default_factory=VariantOptions)
    placement: PlacementMode = Field(default_factory=ReplacePlacement)

    @property
    def binder_placement(self) -> BinderPlacement:
        return BinderPlacement(self.placement.binder_placement)

    @property
    def buffer_pages(self) -> int:
        return getattr(self.placement, "buffer_pages", 0)
