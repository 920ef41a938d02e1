"""Asset catalog entry schema."""

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .base import Footprint, RarityTier


class AssetDescriptor(BaseModel):
    """Static catalog entry, read-only for the lifetime of a run.

    Rotation capability (`orientation_sensitive`, `rotation_range`,
    `rotation_step`), positional `offset` and `footprint` are left unset in
    catalog files and resolved from category defaults when the catalog is
    built.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    category: str = Field(min_length=1)
    affinity_tags: tuple[str, ...] = Field(
        default=(), validation_alias=AliasChoices("affinity_tags", "affinity")
    )
    rarity_tier: Optional[RarityTier] = Field(
        default=None, validation_alias=AliasChoices("rarity_tier", "rarity")
    )
    unlock_level: int = Field(default=0, ge=0)
    path: Optional[str] = None

    footprint: Optional[Footprint] = None
    orientation_sensitive: Optional[bool] = None
    rotation_range: Optional[tuple[float, float]] = None
    rotation_step: Optional[float] = None
    offset: Optional[float] = Field(default=None, ge=0, le=0.5)

    @field_validator("rarity_tier", mode="before")
    @classmethod
    def _unknown_rarity(cls, value):
        # Unrecognised tiers draw with the "unknown" weight
        if isinstance(value, str) and value not in RarityTier._value2member_map_:
            return None
        return value

    @field_validator("footprint", mode="before")
    @classmethod
    def _footprint_pair(cls, value):
        if isinstance(value, (list, tuple)):
            w, h = value
            return {"w": w, "h": h}
        return value

    @field_validator("rotation_range")
    @classmethod
    def _ordered_range(cls, value):
        if value is not None and value[0] > value[1]:
            raise ValueError(f"rotation_range must be (min, max), got {value}")
        return value
