"""Compile canonical parameters into the upstream query-string dialect.

The upstream REST API takes ``_limit``/``_skip`` paging, an explicit
``_fields`` projection, a single ``_sort_fields`` token (``-`` prefix for
descending), ``<field>_min``/``<field>_max`` range pairs and comma-joined
lists. Compilation never raises for search queries; a dataset query for
``tasks`` without task ids is a client error.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Sequence

from .constants import SUMMARY_FIELDS, SortOrder
from .datasets import SUBSTRATES_DATASET, TASKS_DATASET, DatasetDescriptor
from .errors import ClientInputError
from .models import SearchParams
from .normalizer import normalize_pagination, normalize_search_params

QueryParams = list[tuple[str, str]]


def format_number(value: float | int) -> str:
    """Render a bound the way a JSON client would write it.

    Integral values print without '.0'. Exponents carry no zero padding
    ('1e-7', '1e+21').
    """
    if isinstance(value, int):
        return str(value)
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    text = repr(value)
    if "e" not in text:
        return text
    mantissa, exponent = text.split("e")
    power = int(exponent)
    return f"{mantissa}e{'+' if power > 0 else ''}{power}"


def _join(values: Iterable[str] | str | None) -> str | None:
    """Comma-join cleaned entries, or None when nothing is left."""
    if values is None:
        return None
    entries = values.split(",") if isinstance(values, str) else values
    cleaned = [entry.strip() for entry in entries if entry and entry.strip()]
    return ",".join(cleaned) or None


def _projection(fields: Sequence[str]) -> QueryParams:
    if fields:
        return [("_all_fields", "false"), ("_fields", ",".join(fields))]
    return [("_all_fields", "true")]


def compile_search_query(params: SearchParams) -> QueryParams:
    """Compile SearchParams into ordered upstream query parameters.

    Pagination is clamped again here so a directly constructed SearchParams
    cannot request an oversized page.
    """
    page, page_size = normalize_pagination(params.page, params.page_size)
    sort_prefix = "-" if params.sort_order == SortOrder.DESC else ""

    query: QueryParams = [
        ("_limit", str(page_size)),
        ("_skip", str(max(0, (page - 1) * page_size))),
        *_projection(SUMMARY_FIELDS),
        ("_sort_fields", f"{sort_prefix}{params.sort_field}"),
    ]

    for key, values in (
        ("formula", params.formula),
        ("chemsys", params.chemsys),
        ("elements", params.elements),
        ("exclude_elements", params.exclude_elements),
        ("possible_species", params.possible_species),
        ("has_props", params.has_props),
    ):
        joined = _join(values)
        if joined:
            query.append((key, joined))

    if params.crystal_system:
        query.append(("crystal_system", params.crystal_system))
    if params.spacegroup_symbol:
        query.append(("spacegroup_symbol", params.spacegroup_symbol))

    if params.is_stable is not None:
        query.append(("is_stable", str(params.is_stable).lower()))
    if params.theoretical is not None:
        query.append(("theoretical", str(params.theoretical).lower()))

    for api_field, bounds in params.ranges():
        if bounds.min is not None:
            query.append((f"{api_field}_min", format_number(bounds.min)))
        if bounds.max is not None:
            query.append((f"{api_field}_max", format_number(bounds.max)))

    return query


def _clean_task_ids(task_ids: Iterable[str] | None) -> list[str]:
    cleaned: list[str] = []
    for task_id in task_ids or ():
        text = task_id.strip() if isinstance(task_id, str) else ""
        if text and text not in cleaned:
            cleaned.append(text)
    return cleaned


def _bind_tasks(material_id: str, task_ids: list[str]) -> QueryParams:
    if not task_ids:
        raise ClientInputError(
            "taskIds",
            f"Material {material_id} has no task ids; cannot query calculation tasks.",
        )
    return [("task_ids", ",".join(task_ids))]


def _bind_film(material_id: str, task_ids: list[str]) -> QueryParams:
    return [("film_id", material_id)]


def _bind_material(material_id: str, task_ids: list[str]) -> QueryParams:
    return [("material_ids", material_id)]


# Identifier binding per dataset; anything not listed binds material_ids
_ID_BINDINGS = {
    TASKS_DATASET: _bind_tasks,
    SUBSTRATES_DATASET: _bind_film,
}


def compile_dataset_query(
    descriptor: DatasetDescriptor,
    material_id: str,
    task_ids: Iterable[str] | None = None,
) -> QueryParams:
    """Compile the query for one sub-resource dataset of a material.

    Raises:
        ClientInputError: For the tasks dataset when no task id is given
    """
    bind = _ID_BINDINGS.get(descriptor.key, _bind_material)
    return [
        ("_limit", str(descriptor.result_limit)),
        *bind(material_id, _clean_task_ids(task_ids)),
        *_projection(descriptor.fields),
    ]


def parse_search_query(query: Mapping[str, Any] | Iterable[tuple[str, str]]) -> SearchParams:
    """Read compiled upstream parameters back into SearchParams.

    Inverse of compile_search_query: normalize -> compile -> parse yields an
    equal SearchParams.
    """
    source = dict(query.items() if isinstance(query, Mapping) else query)
    raw: dict[str, Any] = {
        key: value for key, value in source.items() if not key.startswith("_")
    }

    limit = source.get("_limit")
    raw["pageSize"] = limit
    try:
        skip = int(source.get("_skip", 0))
        size = int(limit) if limit is not None else 0
    except (TypeError, ValueError):
        skip, size = 0, 0
    if size > 0:
        raw["page"] = skip // size + 1

    sort_token = source.get("_sort_fields")
    if isinstance(sort_token, str) and sort_token:
        descending = sort_token.startswith("-")
        raw["sortField"] = sort_token.lstrip("-")
        raw["sortOrder"] = SortOrder.DESC if descending else SortOrder.ASC

    return normalize_search_params(raw)
