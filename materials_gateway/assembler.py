"""Per-dataset shaping of upstream documents into the unified detail object."""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

from .datasets import SUBSTRATES_DATASET, DatasetDescriptor
from .models import MaterialPropertyResponse

logger = logging.getLogger(__name__)

Shaper = Callable[[DatasetDescriptor, list[Any]], Any]


def shape_single(descriptor: DatasetDescriptor, entries: list[Any]) -> Any:
    """First document, or None when upstream returned nothing."""
    return entries[0] if entries else None


def shape_multiple(descriptor: DatasetDescriptor, entries: list[Any]) -> list[Any]:
    """Full list capped at the descriptor limit (possibly empty)."""
    return list(entries[: descriptor.result_limit])


def reconcile_substrate(entry: Any) -> Any:
    """Expose the legacy ``_norients`` count as ``norients``.

    A canonical value already present wins over the legacy one.
    """
    if not isinstance(entry, Mapping):
        return entry
    shaped = dict(entry)
    legacy = shaped.pop("_norients", None)
    if shaped.get("norients") is None:
        shaped["norients"] = legacy
    return shaped


def shape_substrates(descriptor: DatasetDescriptor, entries: list[Any]) -> list[Any]:
    return [reconcile_substrate(entry) for entry in shape_multiple(descriptor, entries)]


# Datasets needing more than the cardinality default
_SHAPERS: dict[str, Shaper] = {
    SUBSTRATES_DATASET: shape_substrates,
}


def shaper_for(descriptor: DatasetDescriptor) -> Shaper:
    """Return the shaping function for a dataset."""
    default = shape_multiple if descriptor.is_multiple else shape_single
    return _SHAPERS.get(descriptor.key, default)


def shape_dataset(descriptor: DatasetDescriptor, entries: list[Any]) -> Any:
    """Shape one dataset's upstream documents.

    Returns None for a single-record dataset with no document; multiple-record
    datasets always yield a list.
    """
    return shaper_for(descriptor)(descriptor, entries)


def assemble_response(
    material_id: str,
    results: Mapping[str, Any],
) -> MaterialPropertyResponse:
    """Merge shaped dataset payloads into one response.

    Args:
        material_id: Material the datasets describe
        results: dataset key -> shaped payload, in dispatch order

    Returns:
        MaterialPropertyResponse without the datasets that yielded nothing
    """
    datasets = {key: payload for key, payload in results.items() if payload is not None}
    skipped = [key for key in results if key not in datasets]
    if skipped:
        logger.debug("No data for %s in datasets %s", material_id, skipped)
    return MaterialPropertyResponse(material_id=material_id, datasets=datasets)
