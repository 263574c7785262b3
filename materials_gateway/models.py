"""Value objects for search parameters and aggregated detail responses.

All of these are constructed per request and never mutated afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator

from .constants import (
    DEFAULT_IS_STABLE,
    DEFAULT_PAGE,
    DEFAULT_PAGE_SIZE,
    DEFAULT_SORT_FIELD,
    DEFAULT_SORT_ORDER,
    RANGE_FIELDS,
)


@dataclass(frozen=True)
class RangeFilter:
    """Optional numeric bounds for one property.

    Attributes:
        min: Lower bound, inclusive
        max: Upper bound, inclusive
    """

    min: float | None = None
    max: float | None = None

    @classmethod
    def build(cls, lower: float | None, upper: float | None) -> RangeFilter | None:
        """Create an ordered range, or None when both bounds are missing.

        Inverted bounds are swapped, never rejected.
        """
        if lower is None and upper is None:
            return None
        if lower is not None and upper is not None and lower > upper:
            lower, upper = upper, lower
        return cls(min=lower, max=upper)

    def to_dict(self) -> dict[str, float]:
        """Convert to dictionary, omitting missing bounds."""
        data = {}
        if self.min is not None:
            data["min"] = self.min
        if self.max is not None:
            data["max"] = self.max
        return data


@dataclass(frozen=True)
class SearchParams:
    """Canonical, defaulted representation of a material search.

    Array fields are tuples (order preserved, duplicates removed) or None;
    they are never empty.
    """

    formula: str | None = None
    chemsys: str | None = None
    elements: tuple[str, ...] | None = None
    exclude_elements: tuple[str, ...] | None = None
    possible_species: tuple[str, ...] | None = None
    has_props: tuple[str, ...] | None = None

    band_gap: RangeFilter | None = None
    energy_above_hull: RangeFilter | None = None
    formation_energy: RangeFilter | None = None
    density: RangeFilter | None = None
    volume: RangeFilter | None = None
    total_magnetization: RangeFilter | None = None

    crystal_system: str | None = None
    spacegroup_symbol: str | None = None
    is_stable: bool | None = DEFAULT_IS_STABLE
    theoretical: bool | None = None

    sort_field: str = DEFAULT_SORT_FIELD
    sort_order: str = DEFAULT_SORT_ORDER
    page: int = DEFAULT_PAGE
    page_size: int = DEFAULT_PAGE_SIZE

    @property
    def skip(self) -> int:
        """Row offset of the requested page."""
        return max(0, (self.page - 1) * self.page_size)

    def ranges(self) -> Iterator[tuple[str, RangeFilter]]:
        """Yield (upstream field, range) for every range filter that is set."""
        for range_field in RANGE_FIELDS:
            value = getattr(self, range_field.attribute)
            if value is not None:
                yield range_field.api_field, value

    def to_dict(self) -> dict[str, Any]:
        """Convert to a camelCase dictionary, omitting absent fields.

        The result is accepted back by the normalizer unchanged.
        """
        data: dict[str, Any] = {
            "formula": self.formula,
            "chemsys": self.chemsys,
            "elements": list(self.elements) if self.elements else None,
            "excludeElements": list(self.exclude_elements) if self.exclude_elements else None,
            "possibleSpecies": list(self.possible_species) if self.possible_species else None,
            "hasProps": list(self.has_props) if self.has_props else None,
            "crystalSystem": self.crystal_system,
            "spacegroupSymbol": self.spacegroup_symbol,
            "isStable": self.is_stable,
            "theoretical": self.theoretical,
            "sortField": self.sort_field,
            "sortOrder": self.sort_order,
            "page": self.page,
            "pageSize": self.page_size,
        }
        for range_field in RANGE_FIELDS:
            value = getattr(self, range_field.attribute)
            data[range_field.key] = value.to_dict() if value is not None else None
        return {key: value for key, value in data.items() if value is not None}


@dataclass(frozen=True)
class DetailRequest:
    """A request for sub-resource datasets of one material.

    Attributes:
        material_id: Catalog identifier (e.g. 'mp-149')
        datasets: Dataset keys to fetch, in request order
        task_ids: External task identifiers for the 'tasks' dataset
    """

    material_id: str
    datasets: tuple[str, ...] = ()
    task_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class MaterialPropertyResponse:
    """Unified detail object keyed by dataset name.

    A dataset that was not requested, or returned nothing, is absent.
    """

    material_id: str
    datasets: dict[str, Any] = field(default_factory=dict)

    def __contains__(self, dataset: object) -> bool:
        return dataset in self.datasets

    def __getitem__(self, dataset: str) -> Any:
        return self.datasets[dataset]

    def get(self, dataset: str, default: Any = None) -> Any:
        """Return the payload for a dataset, or default."""
        return self.datasets.get(dataset, default)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {"material_id": self.material_id, **self.datasets}
