"""
Centralized constants for the materials gateway.

Single source of truth for the upstream endpoint names, the search field
projection, pagination bounds and the sortable/range field tables shared by
the normalizer and the query compiler.

Usage:
    from materials_gateway.constants import SORTABLE_FIELDS, RANGE_FIELDS

    if field in SORTABLE_FIELDS:
        ...
"""

from __future__ import annotations

from typing import NamedTuple

# Upstream endpoint for the paged material summary search
SUMMARY_ENDPOINT = "materials/summary/"

DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 18
MIN_PAGE_SIZE = 6
MAX_PAGE_SIZE = 60

DEFAULT_SORT_FIELD = "energy_above_hull"
DEFAULT_SORT_ORDER = "asc"
DEFAULT_IS_STABLE = True

SORTABLE_FIELDS: tuple[str, ...] = (
    "energy_above_hull",
    "band_gap",
    "density",
    "formation_energy_per_atom",
    "volume",
    "total_magnetization",
)


class SortOrder:
    """Sort direction constants."""

    ASC = "asc"
    DESC = "desc"

    @classmethod
    def all(cls) -> list[str]:
        """Return all valid sort orders."""
        return [cls.ASC, cls.DESC]


SUMMARY_FIELDS: tuple[str, ...] = (
    "material_id",
    "formula_pretty",
    "elements",
    "nelements",
    "nsites",
    "energy_above_hull",
    "formation_energy_per_atom",
    "band_gap",
    "density",
    "volume",
    "total_magnetization",
    "total_magnetization_normalized_vol",
    "is_stable",
    "theoretical",
    "has_props",
    "warnings",
    "calc_types",
    "symmetry",
    "last_updated",
)


class RangeField(NamedTuple):
    """One numeric range filter.

    Attributes:
        attribute: SearchParams attribute name
        key: camelCase request key (``bandGap``)
        api_field: upstream field name (``band_gap``)
        aliases: additional accepted request keys
    """

    attribute: str
    key: str
    api_field: str
    aliases: tuple[str, ...] = ()


RANGE_FIELDS: tuple[RangeField, ...] = (
    RangeField("band_gap", "bandGap", "band_gap"),
    RangeField("energy_above_hull", "energyAboveHull", "energy_above_hull"),
    RangeField(
        "formation_energy",
        "formationEnergy",
        "formation_energy_per_atom",
        aliases=("formation_energy",),
    ),
    RangeField("density", "density", "density"),
    RangeField("volume", "volume", "volume"),
    RangeField("total_magnetization", "totalMagnetization", "total_magnetization"),
)
