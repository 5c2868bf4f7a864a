"""Garment catalog: category -> garment names -> canonical garment-type code.

Resolution is total. Free-form or misspelled garment names fall back to a
default definition instead of failing, so the order wizard can always add a
line item.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Optional

from models.garment import Gender, GarmentTypeCode, GarmentTypeDefinition

logger = logging.getLogger(__name__)

MALE = (Gender.MALE,)
FEMALE = (Gender.FEMALE,)
ALL = (Gender.MALE, Gender.FEMALE)

# Substring matching is skipped for very short queries ("a", "sh", ...)
MIN_SUBSTRING_LENGTH = 3


class CatalogError(RuntimeError):
    """Catalog or schema misconfiguration. A programming error, not user input."""


# ============================================================================
# Catalog data (declaration order matters for tie-breaks)
# ============================================================================


CATEGORIES: dict[str, str] = {
    "BOTTOMS": "Bottoms",
    "UPPERS": "Uppers",
    "WESTCOATS": "Westcoats & Nehru Jackets",
    "BLAZERS": "Blazers, Sherwani & Jackets",
    "ACCESSORIES": "Accessories",
}

# Backend garment-type enum accepted by the order service
TRANSPORT_GARMENT_TYPES = (
    "shirt", "pant", "suit", "blazer", "kurta", "pajama", "sherwani",
    "lehenga", "saree_blouse", "dress", "skirt", "top", "jacket",
    "coat", "waistcoat", "dhoti", "churidar", "salwar", "dupatta", "other",
)

_TRANSPORT_OVERRIDES = {
    GarmentTypeCode.BOTTOM: "other",
    GarmentTypeCode.ACCESSORY: "other",
}


def _g(
    category: str,
    name: str,
    code: GarmentTypeCode,
    genders=ALL,
    price: Optional[float] = None,
    aliases: Iterable[str] = (),
    options: Iterable[str] = (),
) -> GarmentTypeDefinition:
    return GarmentTypeDefinition(
        category=category,
        display_name=name,
        code=code,
        genders=tuple(genders),
        aliases=tuple(aliases),
        accessory_options=tuple(options),
        list_price=price,
    )


C = GarmentTypeCode

_ENTRIES: tuple[GarmentTypeDefinition, ...] = (
    # BOTTOMS
    _g("BOTTOMS", "Trousers", C.PANT, ALL, 85, ("Trouser", "Pant", "Pants", "Dress Pant"),
       ("Two Pocket", "One Pocket", "Belt Loops", "Side Pocket", "Back Pocket")),
    _g("BOTTOMS", "Pajamas", C.PAJAMA, ALL, 45, ("Pajama", "Pyjama", "Pyjamas"),
       ("Elastic Waist", "Drawstring", "Side Pocket")),
    _g("BOTTOMS", "Shalwars", C.SALWAR, ALL, 60, ("Shalwar", "Salwar"),
       ("Elastic Waist", "Drawstring", "Churidar Style")),
    _g("BOTTOMS", "Dhoti", C.DHOTI, MALE, 50),
    _g("BOTTOMS", "Arhems", C.BOTTOM, FEMALE, 55),
    _g("BOTTOMS", "Petticoats", C.SKIRT, FEMALE, 40, ("Petticoat", "Paticoats")),
    _g("BOTTOMS", "Skirts", C.SKIRT, FEMALE, 70, ("Skirt",),
       ("A-Line", "Pencil", "Pleated", "Side Zip")),
    _g("BOTTOMS", "Garara", C.BOTTOM, FEMALE, 120, ("Gharara",)),
    _g("BOTTOMS", "Sharara", C.BOTTOM, FEMALE, 130),
    # UPPERS
    _g("UPPERS", "Shirt", C.SHIRT, ALL, 65, ("Formal Shirt", "Shirts"),
       ("Full Sleeve", "Half Sleeve", "Collar Style", "Button Type", "Pocket")),
    _g("UPPERS", "Kurta and Kurti", C.KURTA, ALL, 80, ("Kurta", "Kurti", "Designer Kurta"),
       ("Full Sleeve", "Half Sleeve", "Collar Style", "Side Slits")),
    _g("UPPERS", "Kamize", C.KURTA, FEMALE, 90, ("Kameez", "Kamiz")),
    _g("UPPERS", "Pathni", C.KURTA, FEMALE, 85, ("Pathani",)),
    _g("UPPERS", "Jubba", C.KURTA, MALE, 110),
    _g("UPPERS", "Blouse", C.SAREE_BLOUSE, FEMALE, 60, ("Saree Blouse",),
       ("Sleeveless", "Short Sleeve", "Back Design", "Neckline Style")),
    _g("UPPERS", "Shrags", C.JACKET, ALL, 70),
    _g("UPPERS", "Gown", C.DRESS, FEMALE, 150, ("Gowne", "Dress", "Evening Dress")),
    _g("UPPERS", "Kaftan", C.DRESS, ALL, 95),
    _g("UPPERS", "Jacket", C.JACKET, ALL, 120, ("Jacket (Upper)",)),
    _g("UPPERS", "Froog", C.DRESS, ALL, 85, ("Frock",)),
    _g("UPPERS", "One Piece", C.DRESS, FEMALE, 140),
    # WESTCOATS
    _g("WESTCOATS", "West Coat", C.WAISTCOAT, ALL, 180, ("Waistcoat", "Westcoat"),
       ("V-Neck", "High Neck", "Button Style")),
    _g("WESTCOATS", "Nehru", C.WAISTCOAT, MALE, 160, ("Nehru Jacket",)),
    _g("WESTCOATS", "Shrug", C.JACKET, FEMALE, 100),
    # BLAZERS
    _g("BLAZERS", "Blazer", C.BLAZER, ALL, 200, (),
       ("One Button", "Two Button", "Three Button", "Peak Lapel", "Notch Lapel")),
    _g("BLAZERS", "Jothpuri", C.SUIT, MALE, 220, ("Jodhpuri", "Suit")),
    _g("BLAZERS", "Sherwani", C.SHERWANI, MALE, 350, (),
       ("High Neck", "Band Collar", "Button Style", "Churidar Bottom")),
    _g("BLAZERS", "Over Coat", C.COAT, ALL, 250, ("Overcoat",)),
    _g("BLAZERS", "Trench Coats", C.COAT, ALL, 270, ("Trench Coat",)),
    _g("BLAZERS", "Jackets", C.JACKET, ALL, 190, ("Formal Jacket",)),
    # ACCESSORIES
    _g("ACCESSORIES", "Dupatta", C.DUPATTA, FEMALE, 45),
    _g("ACCESSORIES", "Shawl", C.ACCESSORY, ALL, 60),
    _g("ACCESSORIES", "Tuxedo Belt", C.ACCESSORY, MALE, 40),
    _g("ACCESSORIES", "Shoes/Sleepers/Sandals/Jutis", C.ACCESSORY, ALL, 120,
       ("Shoes", "Sleepers", "Slippers", "Sandals", "Jutis")),
    _g("ACCESSORIES", "Safa", C.ACCESSORY, MALE, 80),
    _g("ACCESSORIES", "Katar and Knife", C.ACCESSORY, MALE, 90, ("Katar", "Knife")),
    _g("ACCESSORIES", "Perfume and Attr", C.ACCESSORY, ALL, 75, ("Perfume", "Attar", "Attr")),
    _g("ACCESSORIES", "Broches", C.ACCESSORY, FEMALE, 30, ("Brooches",)),
    _g("ACCESSORIES", "Tie", C.ACCESSORY, MALE, 35),
    _g("ACCESSORIES", "Bow", C.ACCESSORY, MALE, 25, ("Bow Tie",)),
    _g("ACCESSORIES", "Muffler", C.ACCESSORY, ALL, 40),
    _g("ACCESSORIES", "Scarf", C.ACCESSORY, FEMALE, 35, ("Scook",)),
    _g("ACCESSORIES", "Watch", C.ACCESSORY, ALL, 150),
    _g("ACCESSORIES", "Buttons", C.ACCESSORY, ALL, 15),
    _g("ACCESSORIES", "Cufflinks", C.ACCESSORY, MALE, 45, ("Cufflings",)),
    _g("ACCESSORIES", "Mala", C.ACCESSORY, FEMALE, 55),
    _g("ACCESSORIES", "Belts", C.ACCESSORY, ALL, 50, ("Belt",)),
    _g("ACCESSORIES", "Wallets/Bags/Clutches/Purses", C.ACCESSORY, ALL, 100,
       ("Wallets", "Bags", "Clutches", "Purses")),
    _g("ACCESSORIES", "Rings", C.ACCESSORY, ALL, 65),
    _g("ACCESSORIES", "Ear Rings", C.ACCESSORY, FEMALE, 45, ("Earrings",)),
    _g("ACCESSORIES", "Necklace", C.ACCESSORY, FEMALE, 120),
    _g("ACCESSORIES", "Bangles", C.ACCESSORY, FEMALE, 40),
)

DEFAULT_DEFINITION = GarmentTypeDefinition(
    category="OTHER",
    display_name="Custom Garment",
    code=GarmentTypeCode.OTHER,
    genders=ALL,
)


def _normalize(text: Optional[str]) -> str:
    return re.sub(r"\s+", " ", (text or "").strip().lower())


# ============================================================================
# Catalog
# ============================================================================


class GarmentCatalog:
    """Static garment taxonomy with a total ``resolve`` function."""

    def __init__(
        self,
        entries: Iterable[GarmentTypeDefinition] = _ENTRIES,
        default: Optional[GarmentTypeDefinition] = DEFAULT_DEFINITION,
    ):
        self._entries = tuple(entries)
        self._default = default
        self._by_name: dict[str, list[int]] = {}
        for position, entry in enumerate(self._entries):
            for name in entry.names:
                self._by_name.setdefault(_normalize(name), []).append(position)

    @property
    def default(self) -> GarmentTypeDefinition:
        if self._default is None:
            raise CatalogError("Garment catalog has no default definition")
        return self._default

    @property
    def entries(self) -> tuple[GarmentTypeDefinition, ...]:
        return self._entries

    def categories(self) -> dict[str, str]:
        """Category keys with display names, in declaration order."""
        present = {entry.category for entry in self._entries}
        return {key: label for key, label in CATEGORIES.items() if key in present}

    def items(
        self, category: Optional[str] = None, gender: Optional[str] = None
    ) -> list[GarmentTypeDefinition]:
        """Browse entries, optionally filtered by category and gender."""
        wanted = (category or "").upper()
        return [
            entry
            for entry in self._entries
            if (not wanted or entry.category == wanted) and entry.is_for(gender)
        ]

    def search(self, text: str, gender: Optional[str] = None) -> list[GarmentTypeDefinition]:
        """Entries whose name or alias contains ``text``."""
        query = _normalize(text)
        if not query:
            return self.items(gender=gender)
        return [
            entry
            for entry in self._entries
            if entry.is_for(gender) and any(query in _normalize(n) for n in entry.names)
        ]

    def resolve(
        self,
        category: Optional[str],
        name: Optional[str],
        gender: Optional[str] = None,
    ) -> GarmentTypeDefinition:
        """
        Resolve a garment name to its definition. Never raises for user input.

        Exact case-insensitive matches (name or alias) win over substring
        matches. Ties prefer the given category, then the given gender, then
        declaration order. Unknown names return the default definition.

        Args:
            category: Selected category key (optional context)
            name: Garment name as entered or picked
            gender: Selected customer gender (optional context)

        Returns:
            Matching or default GarmentTypeDefinition
        """
        query = _normalize(name)
        if not query:
            return self.default

        exact = self._by_name.get(query)
        if exact:
            return self._best(exact, category, gender)

        if len(query) >= MIN_SUBSTRING_LENGTH:
            partial = [
                position
                for position, entry in enumerate(self._entries)
                if any(
                    query in candidate or candidate in query
                    for candidate in (_normalize(n) for n in entry.names)
                    if len(candidate) >= MIN_SUBSTRING_LENGTH
                )
            ]
            if partial:
                return self._best(partial, category, gender)

        logger.debug("[GarmentCatalog] No match for %r, using default definition", name)
        return self.default

    def _best(
        self,
        positions: list[int],
        category: Optional[str],
        gender: Optional[str],
    ) -> GarmentTypeDefinition:
        wanted = (category or "").upper()

        def rank(position: int) -> tuple[int, int, int]:
            entry = self._entries[position]
            return (
                0 if wanted and entry.category == wanted else 1,
                0 if gender and entry.is_for(gender) else 1,
                position,
            )

        return self._entries[min(positions, key=rank)]

    def accessory_options(self, category: Optional[str], name: Optional[str]) -> tuple[str, ...]:
        return self.resolve(category, name).accessory_options

    @staticmethod
    def transport_type(code: GarmentTypeCode | str) -> str:
        """Map a canonical code to the order service's garment-type string."""
        try:
            code = GarmentTypeCode(code)
        except ValueError:
            return "other"
        value = _TRANSPORT_OVERRIDES.get(code, code.value)
        return value if value in TRANSPORT_GARMENT_TYPES else "other"


_catalog: Optional[GarmentCatalog] = None


def get_garment_catalog() -> GarmentCatalog:
    """Shared catalog instance (loaded once)."""
    global _catalog
    if _catalog is None:
        _catalog = GarmentCatalog()
    return _catalog
