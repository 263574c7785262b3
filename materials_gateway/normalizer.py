"""Parameter normalization: untyped request input -> canonical value objects.

Input arrives either as a JSON body or as a flat query string, with camelCase
keys or their legacy snake_case aliases. Normalization is total: every input,
however malformed, maps to a valid SearchParams. Fields that cannot be parsed
are dropped, never reported.

Example:
    params = normalize_search_params(
        {"material": "LiFePO4", "bandGapMin": "1.5", "bandGapMax": "0.5"}
    )
    assert params.formula == "LiFePO4"
    assert params.band_gap == RangeFilter(min=0.5, max=1.5)
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Any, Mapping

from .constants import (
    DEFAULT_IS_STABLE,
    DEFAULT_PAGE,
    DEFAULT_PAGE_SIZE,
    DEFAULT_SORT_FIELD,
    DEFAULT_SORT_ORDER,
    MAX_PAGE_SIZE,
    MIN_PAGE_SIZE,
    RANGE_FIELDS,
    SORTABLE_FIELDS,
    RangeField,
    SortOrder,
)
from .datasets import resolve_datasets
from .models import DetailRequest, RangeFilter, SearchParams


class RequestKind(str, Enum):
    """Which canonical value a request bag is normalized into."""

    SEARCH = "search"
    DETAIL = "detail"


# =============================================================================
# Scalar parsers
# =============================================================================


def _first(source: Mapping[str, Any], *keys: str) -> Any:
    """Return the first value that is present (not None) under any key."""
    for key in keys:
        value = source.get(key)
        if value is not None:
            return value
    return None


def parse_string(value: Any) -> str | None:
    """Trimmed string, or None for non-strings and blank strings."""
    if not isinstance(value, str):
        return None
    text = value.strip()
    return text or None


def parse_string_list(value: Any) -> tuple[str, ...] | None:
    """Parse a list or comma separated string into unique trimmed entries.

    Returns None rather than an empty tuple.
    """
    if isinstance(value, str):
        entries: list[Any] = value.split(",")
    elif isinstance(value, (list, tuple)):
        entries = list(value)
    else:
        return None

    cleaned: list[str] = []
    for entry in entries:
        text = parse_string(entry)
        if text and text not in cleaned:
            cleaned.append(text)
    return tuple(cleaned) or None


def parse_number(value: Any) -> float | int | None:
    """Finite number from a number or numeric string, else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            as_float = float(value)
        except OverflowError:
            return None
        return value if math.isfinite(as_float) else None
    # float() also takes digit separators; plain decimal notation only
    if isinstance(value, str) and value.strip() and "_" not in value:
        try:
            parsed = float(value.strip())
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def parse_integer(value: Any) -> int | None:
    """Floored positive integer (>= 1), or None if not numeric."""
    parsed = parse_number(value)
    if parsed is None:
        return None
    return max(1, math.floor(parsed))


def parse_boolean(value: Any) -> bool | None:
    """Native bool or the strings 'true'/'false' (any case)."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized == "true":
            return True
        if normalized == "false":
            return False
    return None


def parse_sort_order(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    normalized = value.strip().lower()
    return normalized if normalized in SortOrder.all() else None


def parse_sort_field(value: Any) -> str:
    """Sortable field name, falling back to the default sort field."""
    text = parse_string(value)
    return text if text in SORTABLE_FIELDS else DEFAULT_SORT_FIELD


def normalize_pagination(page: Any = None, page_size: Any = None) -> tuple[int, int]:
    """Clamp page to >= 1 and page size to [MIN_PAGE_SIZE, MAX_PAGE_SIZE]."""
    safe_page = parse_integer(page) or DEFAULT_PAGE
    requested = parse_integer(page_size)
    if requested is None:
        return safe_page, DEFAULT_PAGE_SIZE
    return safe_page, min(MAX_PAGE_SIZE, max(MIN_PAGE_SIZE, requested))


def _range_names(range_field: RangeField) -> list[str]:
    names = [range_field.key]
    for name in (range_field.attribute, range_field.api_field, *range_field.aliases):
        if name not in names:
            names.append(name)
    return names


def parse_range(source: Mapping[str, Any], range_field: RangeField) -> RangeFilter | None:
    """Read one range from a nested {min,max} object or flat Min/Max keys."""
    names = _range_names(range_field)
    nested = next(
        (source[name] for name in names if isinstance(source.get(name), Mapping)),
        None,
    )

    lower = nested.get("min") if nested is not None else None
    upper = nested.get("max") if nested is not None else None

    if lower is None:
        lower = _first(source, f"{range_field.key}Min", *(f"{n}_min" for n in names))
    if upper is None:
        upper = _first(source, f"{range_field.key}Max", *(f"{n}_max" for n in names))

    return RangeFilter.build(parse_number(lower), parse_number(upper))


# =============================================================================
# Request normalizers
# =============================================================================


def normalize_search_params(raw: Any) -> SearchParams:
    """Normalize an untyped key-value bag into SearchParams.

    Explicit values are parsed first and defaults applied afterwards, so an
    explicit ``isStable=false`` survives.
    """
    source: Mapping[str, Any] = raw if isinstance(raw, Mapping) else {}

    ranges = {field.attribute: parse_range(source, field) for field in RANGE_FIELDS}

    page, page_size = normalize_pagination(
        source.get("page"),
        _first(source, "pageSize", "page_size", "limit"),
    )

    is_stable = parse_boolean(_first(source, "isStable", "is_stable"))

    return SearchParams(
        formula=parse_string(_first(source, "formula", "material")),
        chemsys=parse_string(source.get("chemsys")),
        elements=parse_string_list(source.get("elements")),
        exclude_elements=parse_string_list(
            _first(source, "excludeElements", "exclude_elements")
        ),
        possible_species=parse_string_list(
            _first(source, "possibleSpecies", "possible_species")
        ),
        has_props=parse_string_list(_first(source, "hasProps", "has_props")),
        crystal_system=parse_string(_first(source, "crystalSystem", "crystal_system")),
        spacegroup_symbol=parse_string(
            _first(source, "spacegroupSymbol", "spacegroup_symbol")
        ),
        is_stable=DEFAULT_IS_STABLE if is_stable is None else is_stable,
        theoretical=parse_boolean(source.get("theoretical")),
        sort_field=parse_sort_field(_first(source, "sortField", "sort", "sort_field")),
        sort_order=parse_sort_order(_first(source, "sortOrder", "sort_order"))
        or DEFAULT_SORT_ORDER,
        page=page,
        page_size=page_size,
        **ranges,
    )


def normalize_detail_request(material_id: Any, raw: Any = None) -> DetailRequest:
    """Normalize a detail request: material id plus dataset/task selection.

    ``datasets`` and ``taskIds`` accept lists or comma separated strings.
    Task ids pull the tasks dataset into the selection.
    """
    source: Mapping[str, Any] = raw if isinstance(raw, Mapping) else {}
    task_ids = parse_string_list(_first(source, "taskIds", "task_ids")) or ()
    datasets = resolve_datasets(
        parse_string_list(source.get("datasets")),
        task_ids,
    )
    return DetailRequest(
        material_id=parse_string(material_id) or "",
        datasets=tuple(datasets),
        task_ids=task_ids,
    )


def normalize(raw: Any, kind: RequestKind | str = RequestKind.SEARCH) -> SearchParams | DetailRequest:
    """Normalize a request bag according to its kind.

    For ``detail`` the material id is read from ``materialId``/``material_id``.
    An unrecognized kind is treated as a search.
    """
    try:
        kind = RequestKind(kind)
    except ValueError:
        kind = RequestKind.SEARCH
    if kind is RequestKind.DETAIL:
        source: Mapping[str, Any] = raw if isinstance(raw, Mapping) else {}
        return normalize_detail_request(
            _first(source, "materialId", "material_id"), source
        )
    return normalize_search_params(raw)
