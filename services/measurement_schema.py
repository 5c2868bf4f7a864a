"""Measurement schemas keyed by canonical garment-type code."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Mapping, Optional

from models.garment import GarmentTypeCode, MeasurementField
from models.order import ValidationIssue, to_decimal
from services.garment_catalog import CatalogError

logger = logging.getLogger(__name__)


# How-to-measure hints shown next to inputs
GUIDE: dict[str, str] = {
    "chest": "Measure around the fullest part of the chest, under the arms",
    "bust": "Measure around the fullest part of the bust",
    "underBust": "Measure around the ribcage directly below the bust",
    "waist": "Measure around the natural waistline",
    "hip": "Measure around the fullest part of the hips",
    "shoulder": "Measure from one shoulder point to the other across the back",
    "neck": "Measure around the base of the neck",
    "armLength": "Measure from the shoulder point to the wrist",
    "bicep": "Measure around the fullest part of the upper arm",
    "armHole": "Measure around the arm where it joins the shoulder",
    "forearm": "Measure around the fullest part of the forearm",
    "wrist": "Measure around the wrist bone",
    "inseam": "Measure from the crotch to the ankle along the inner leg",
    "outseam": "Measure from the waist to the ankle along the outer leg",
    "thigh": "Measure around the fullest part of the thigh",
    "rise": "Measure from the crotch seam to the top of the waistband",
    "knee": "Measure around the knee",
    "calf": "Measure around the fullest part of the calf",
    "ankle": "Measure around the ankle",
    "shirtLength": "Measure from the highest shoulder point to the desired hem",
    "kurtaLength": "Measure from the highest shoulder point to the desired hem",
    "dressLength": "Measure from the highest shoulder point to the desired hem",
    "blouseLength": "Measure from the highest shoulder point to the blouse hem",
    "blazerLength": "Measure from the base of the collar to the desired hem",
    "jacketLength": "Measure from the base of the collar to the desired hem",
    "coatLength": "Measure from the base of the collar to the desired hem",
    "waistcoatLength": "Measure from the base of the collar to the waistcoat point",
    "sherwaniLength": "Measure from the highest shoulder point to the desired hem",
    "skirtLength": "Measure from the waist to the desired hem",
    "length": "Measure the finished length of the garment",
}

_LABELS: dict[str, str] = {
    "chest": "Chest",
    "bust": "Bust",
    "underBust": "Under Bust",
    "waist": "Waist",
    "hip": "Hip",
    "shoulder": "Shoulder",
    "neck": "Neck",
    "armLength": "Arm Length",
    "bicep": "Bicep",
    "armHole": "Arm Hole",
    "forearm": "Forearm",
    "wrist": "Wrist",
    "inseam": "Inseam",
    "outseam": "Outseam",
    "thigh": "Thigh",
    "rise": "Rise",
    "knee": "Knee",
    "calf": "Calf",
    "ankle": "Ankle",
    "shirtLength": "Shirt Length",
    "kurtaLength": "Kurta Length",
    "dressLength": "Dress Length",
    "blouseLength": "Blouse Length",
    "blazerLength": "Blazer Length",
    "jacketLength": "Jacket Length",
    "coatLength": "Coat Length",
    "waistcoatLength": "Waistcoat Length",
    "sherwaniLength": "Sherwani Length",
    "skirtLength": "Skirt Length",
    "length": "Length",
}


def _fields(required: str, optional: str = "", labels: Optional[dict[str, str]] = None):
    labels = labels or {}
    result = []
    for names, is_required in ((required, True), (optional, False)):
        for key in names.split():
            result.append(
                MeasurementField(
                    key=key,
                    label=labels.get(key, _LABELS[key]),
                    required=is_required,
                    placeholder_hint=GUIDE.get(key),
                )
            )
    return tuple(result)


C = GarmentTypeCode

SCHEMAS: dict[GarmentTypeCode, tuple[MeasurementField, ...]] = {
    C.SHIRT: _fields("chest waist shoulder armLength neck shirtLength", "bicep armHole forearm wrist"),
    C.KURTA: _fields("chest waist shoulder armLength neck kurtaLength", "bicep armHole"),
    C.PANT: _fields("waist hip inseam outseam thigh rise", "knee calf ankle"),
    C.PAJAMA: _fields("waist hip outseam", "inseam thigh ankle", {"outseam": "Length"}),
    C.SALWAR: _fields("waist hip outseam", "ankle", {"outseam": "Length"}),
    C.DHOTI: _fields("waist hip outseam", labels={"outseam": "Length"}),
    C.SKIRT: _fields("waist hip skirtLength"),
    C.BOTTOM: _fields("waist hip outseam", "thigh ankle", {"outseam": "Length"}),
    C.DRESS: _fields("bust waist hip shoulder armLength dressLength", "underBust armHole"),
    C.SAREE_BLOUSE: _fields("bust waist shoulder armLength blouseLength", "underBust armHole"),
    C.BLAZER: _fields("chest waist shoulder armLength neck blazerLength bicep armHole"),
    C.JACKET: _fields("chest waist shoulder armLength jacketLength", "bicep armHole"),
    C.COAT: _fields("chest waist shoulder armLength coatLength", "hip bicep armHole"),
    C.WAISTCOAT: _fields("chest waist shoulder waistcoatLength", "neck"),
    C.SHERWANI: _fields("chest waist hip shoulder armLength neck sherwaniLength", "bicep armHole"),
    C.SUIT: _fields(
        "chest waist hip shoulder armLength neck blazerLength inseam outseam",
        "thigh rise bicep armHole",
    ),
    C.DUPATTA: (),
    C.ACCESSORY: (),
    C.OTHER: _fields("", "chest waist shoulder length", {"chest": "Chest / Bust"}),
}


class MeasurementSchemaResolver:
    """Answers which measurements to collect for a garment-type code."""

    def __init__(
        self,
        schemas: Mapping[GarmentTypeCode, tuple[MeasurementField, ...]] = SCHEMAS,
        default_code: Optional[GarmentTypeCode] = GarmentTypeCode.OTHER,
    ):
        self._schemas = dict(schemas)
        self._default_code = default_code

    def fields_for(self, code: GarmentTypeCode | str) -> list[MeasurementField]:
        """
        Ordered measurement fields for a garment-type code.

        An empty list means "nothing to measure" (accessories), not an error.

        Raises:
            CatalogError: The code has no schema and there is no default schema
        """
        try:
            code = GarmentTypeCode(code)
        except ValueError:
            code = None

        if code in self._schemas:
            return list(self._schemas[code])

        if self._default_code is None or self._default_code not in self._schemas:
            raise CatalogError(f"No measurement schema registered for {code!r}")
        logger.debug("[MeasurementSchema] No schema for %r, using default", code)
        return list(self._schemas[self._default_code])

    def keys_for(self, code) -> list[str]:
        return [f.key for f in self.fields_for(code)]

    def required_keys(self, code) -> list[str]:
        return [f.key for f in self.fields_for(code) if f.required]

    def has_required_fields(self, code) -> bool:
        return bool(self.required_keys(code))

    @staticmethod
    def guide(key: str) -> Optional[str]:
        return GUIDE.get(key)

    def validate_measurements(
        self, code, values: Mapping[str, object], prefix: str = "measurements"
    ) -> list[ValidationIssue]:
        """Check keys against the schema and values for being positive numbers."""
        allowed = set(self.keys_for(code))
        issues: list[ValidationIssue] = []
        for key, raw in values.items():
            field = f"{prefix}.{key}"
            if key not in allowed:
                issues.append(ValidationIssue(field=field, message=f"Unknown measurement '{key}'"))
                continue
            try:
                value = to_decimal(raw)
            except ValueError:
                issues.append(ValidationIssue(field=field, message="Must be a number"))
                continue
            if value <= 0:
                issues.append(ValidationIssue(field=field, message="Must be greater than 0"))
        return issues

    def missing_required(self, code, values: Mapping[str, Decimal]) -> list[str]:
        """Required keys that have no positive value yet."""
        return [
            key
            for key in self.required_keys(code)
            if values.get(key) is None or to_decimal(values.get(key)) <= 0
        ]


_resolver: Optional[MeasurementSchemaResolver] = None


def get_measurement_resolver() -> MeasurementSchemaResolver:
    """Shared resolver instance."""
    global _resolver
    if _resolver is None:
        _resolver = MeasurementSchemaResolver()
    return _resolver
