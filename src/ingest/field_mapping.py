"""Declarative column mapping for bookings and detail sequences.

Each storage column names its source headers, its semantic type, and,
for numbers, whether a missing value becomes ``None`` or a default.
The same tables drive the storage schema in ``store.schema``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Mapping

from ingest.normalizer import (
    normalize_boolean,
    normalize_date,
    normalize_integer,
    normalize_numeric,
    normalize_string,
)

STRING = "string"
DATE = "date"
BOOLEAN = "boolean"
NUMERIC = "numeric"
INTEGER = "integer"

JOB_REFERENCE_HEADERS = ("JOB_REFERENCE_FAKE", "JOB_REFERENCE")
SEQUENCE_HEADERS = ("JOB_DTL_SEQUENCE",)


@dataclass(frozen=True)
class FieldSpec:
    """Mapping of one storage column to its source headers.

    Attributes:
        column: Storage column name.
        headers: Candidate source headers; the first one present is used.
        kind: Semantic type used for normalization.
        default: Value used when a numeric field is empty or unparseable.
    """

    column: str
    headers: tuple[str, ...]
    kind: str = STRING
    default: Any = None


BOOKING_FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec("shipcomp_code", ("SHIPCOMP_CODE",)),
    FieldSpec("shipcomp_name", ("SHIPCOMP_NAME",)),
    FieldSpec("point_load", ("POINT_LOAD",)),
    FieldSpec("point_load_country", ("POINT_LOAD_COUNTRY",)),
    FieldSpec("point_disch", ("POINT_DISCH",)),
    FieldSpec("point_disch_country", ("POINT_DISCH_COUNTRY",)),
    FieldSpec("origin", ("ORIGIN",)),
    FieldSpec("destination", ("DESTINATION",)),
    FieldSpec("booking_confirmation_date", ("BOOKING_CONFIRMATION_DATE",), DATE),
    FieldSpec("cancellation_date", ("CANCELLATION_DATE",), DATE),
    FieldSpec("job_status", ("JOB_STATUS",), INTEGER),
    FieldSpec("contract_type", ("CONTRACT_TYPE",)),
    FieldSpec("unif_rate", ("UNIF_RATE",), NUMERIC),
    FieldSpec("commercial_trade", ("COMMERCIAL_TRADE",)),
    FieldSpec("commercial_subtrade", ("COMMERCIAL_SUBTRADE",)),
    FieldSpec("commercial_pole", ("COMMERCIAL_POLE",)),
    FieldSpec("commercial_haul", ("COMMERCIAL_HAUL",)),
    FieldSpec("commercial_group_line", ("COMMERCIAL_GROUP_LINE",)),
    FieldSpec("voyage_ref_jh", ("VOYAGE_REF_JH", "VOYAGE_REFERENCE")),
    FieldSpec("point_from", ("POINT_FROM",)),
    FieldSpec("point_to", ("POINT_TO",)),
)

# TEU and unit counts are summed downstream, so they default to zero.
DETAIL_FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec("nb_teu", ("NB_TEU", "TEUS_BOOKED"), NUMERIC, Decimal(0)),
    FieldSpec("nb_units", ("NB_UNITS",), NUMERIC, Decimal(0)),
    FieldSpec("net_weight", ("NET_WEIGHT", "NET_WEIGHT_BOOKED"), NUMERIC),
    FieldSpec("commodity_description", ("COMMODITY_DESCRIPTION",)),
    FieldSpec("haz_flag", ("HAZ_FLAG",), BOOLEAN),
    FieldSpec("reef_flag", ("REEF_FLAG",), BOOLEAN),
    FieldSpec("is_reefer", ("IS_REEFER",), BOOLEAN),
    FieldSpec("oversize_flag", ("OVERSIZE_FLAG",), BOOLEAN),
    FieldSpec("is_oog", ("IS_OOG", "OOG_FLAG"), BOOLEAN),
    FieldSpec("package_code", ("PACKAGE_CODE",)),
    FieldSpec("commodity_code_lara", ("COMMODITY_CODE_LARA",)),
    FieldSpec("soc_flag", ("SOC_FLAG",), BOOLEAN),
    FieldSpec("is_empty", ("IS_EMPTY",), BOOLEAN),
    FieldSpec("marketing_commodity_l0", ("MARKETING_COMMODITY_L0",)),
    FieldSpec("marketing_commodity_l1", ("MARKETING_COMMODITY_L1",)),
    FieldSpec("marketing_commodity_l2", ("MARKETING_COMMODITY_L2",)),
)

_NORMALIZERS: dict[str, Callable[[str | None, Any], Any]] = {
    STRING: lambda value, _default: normalize_string(value),
    DATE: lambda value, _default: normalize_date(value),
    BOOLEAN: lambda value, _default: normalize_boolean(value),
    NUMERIC: normalize_numeric,
    INTEGER: normalize_integer,
}


def lookup_raw(fields: Mapping[str, str], headers: tuple[str, ...]) -> str | None:
    """Return the raw value of the first header present in ``fields``."""
    for header in headers:
        if header in fields:
            return fields[header]
    return None


def normalize_field(spec: FieldSpec, fields: Mapping[str, str]) -> Any:
    """Normalize one column from a raw row."""
    raw_value = lookup_raw(fields, spec.headers)
    return _NORMALIZERS[spec.kind](raw_value, spec.default)


def normalize_fields(specs: tuple[FieldSpec, ...], fields: Mapping[str, str]) -> dict[str, Any]:
    """Normalize every column of an entity from a raw row."""
    return {spec.column: normalize_field(spec, fields) for spec in specs}
