"""Garment taxonomy and measurement schema models."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class GarmentTypeCode(str, Enum):
    """Canonical garment-type codes.

    Free-form garment names resolve to one of these codes; measurement
    schemas are keyed by them.
    """

    # Uppers
    SHIRT = "shirt"
    KURTA = "kurta"
    SAREE_BLOUSE = "saree_blouse"
    DRESS = "dress"
    JACKET = "jacket"

    # Bottoms
    PANT = "pant"
    PAJAMA = "pajama"
    SALWAR = "salwar"
    DHOTI = "dhoti"
    SKIRT = "skirt"
    BOTTOM = "bottom"  # Garara, Sharara, Arhems

    # Formal wear
    WAISTCOAT = "waistcoat"
    BLAZER = "blazer"
    SUIT = "suit"
    SHERWANI = "sherwani"
    COAT = "coat"

    # No measurements
    DUPATTA = "dupatta"
    ACCESSORY = "accessory"

    # Fallback for unknown names
    OTHER = "other"


class Gender(str, Enum):
    """Gender context used to filter and rank catalog entries."""

    MALE = "male"
    FEMALE = "female"


class MeasurementField(BaseModel):
    """One measurement to collect for a garment."""

    key: str = Field(..., description="Key as stored by the measurement service")
    label: str
    required: bool = False
    placeholder_hint: Optional[str] = Field(
        None, description="How-to-measure hint shown next to the input"
    )

    model_config = ConfigDict(frozen=True)


class GarmentTypeDefinition(BaseModel):
    """
    Catalog entry for a garment.

    Immutable; loaded once with the catalog and shared read-only.
    """

    category: str = Field(..., description="Catalog category key, e.g. 'UPPERS'")
    display_name: str
    code: GarmentTypeCode
    genders: tuple[Gender, ...] = (Gender.MALE, Gender.FEMALE)
    aliases: tuple[str, ...] = Field(
        default_factory=tuple, description="Synonyms matched like the display name"
    )
    accessory_options: tuple[str, ...] = Field(
        default_factory=tuple, description="Style options, e.g. 'Full Sleeve'"
    )
    list_price: Optional[float] = Field(
        None, description="Reference price for display only", ge=0
    )

    model_config = ConfigDict(frozen=True)

    @property
    def names(self) -> tuple[str, ...]:
        """Display name followed by all aliases."""
        return (self.display_name, *self.aliases)

    def is_for(self, gender: Optional[str]) -> bool:
        if not gender:
            return True
        return gender.lower() in {g.value for g in self.genders}
