"""Registry of the per-material sub-resource datasets.

Each descriptor names the upstream path, the field projection and whether the
dataset yields one record or a bounded list per material.

Usage:
    from materials_gateway.datasets import get_descriptor, parse_datasets

    descriptor = get_descriptor("elasticity")
    keys = parse_datasets("thermo,eos")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from .errors import ClientInputError

logger = logging.getLogger(__name__)

DEFAULT_MULTIPLE_LIMIT = 10

TASKS_DATASET = "tasks"
SUBSTRATES_DATASET = "substrates"


class Cardinality(str, Enum):
    """Number of records a dataset yields per material."""

    SINGLE = "single"
    MULTIPLE = "multiple"


@dataclass(frozen=True)
class DatasetDescriptor:
    """Static description of one sub-resource dataset.

    Attributes:
        key: Dataset name used by callers
        label: Human-readable title
        path: Upstream endpoint path
        fields: Field projection (empty means all fields)
        cardinality: single or multiple
        limit: Explicit result limit for multiple datasets
    """

    key: str
    label: str
    path: str
    fields: tuple[str, ...] = ()
    cardinality: Cardinality = Cardinality.SINGLE
    limit: int | None = None

    @property
    def is_multiple(self) -> bool:
        return self.cardinality is Cardinality.MULTIPLE

    @property
    def result_limit(self) -> int:
        """Rows requested upstream: 1 for single datasets."""
        if not self.is_multiple:
            return 1
        return self.limit or DEFAULT_MULTIPLE_LIMIT

    def to_dict(self) -> dict[str, object]:
        return {
            "key": self.key,
            "label": self.label,
            "path": self.path,
            "cardinality": self.cardinality.value,
            "limit": self.result_limit,
        }


_DESCRIPTORS: tuple[DatasetDescriptor, ...] = (
    DatasetDescriptor(
        key="dielectric",
        label="Dielectric response",
        path="materials/dielectric/",
        fields=(
            "material_id",
            "e_total",
            "e_ionic",
            "e_electronic",
            "n",
            "total",
            "last_updated",
        ),
    ),
    DatasetDescriptor(
        key="elasticity",
        label="Elastic tensor",
        path="materials/elasticity/",
        fields=(
            "material_id",
            "k_vrh",
            "g_vrh",
            "homogeneous_poisson",
            "universal_anisotropy",
            "compliance_tensor",
            "elastic_tensor",
            "last_updated",
        ),
    ),
    DatasetDescriptor(
        key="piezoelectric",
        label="Piezoelectric response",
        path="materials/piezoelectric/",
        fields=(
            "material_id",
            "e_ij_max",
            "max_direction",
            "strain_for_max",
            "total",
            "last_updated",
        ),
    ),
    DatasetDescriptor(
        key="absorption",
        label="Optical absorption",
        path="materials/absorption/",
        fields=(
            "material_id",
            "task_id",
            "bandgap",
            "energy_max",
            "energies",
            "absorption_coefficient",
        ),
    ),
    DatasetDescriptor(
        key="thermo",
        label="Thermodynamics",
        path="materials/thermo/",
        fields=(
            "material_id",
            "thermo_id",
            "energy_per_atom",
            "formation_energy_per_atom",
            "energy_above_hull",
            "equilibrium_reaction_energy_per_atom",
            "last_updated",
        ),
    ),
    DatasetDescriptor(
        key="magnetism",
        label="Magnetism",
        path="materials/magnetism/",
        fields=(
            "material_id",
            "ordering",
            "ordering_temperature",
            "total_magnetization",
            "total_magnetization_normalized_vol",
            "is_magnetic",
            "last_updated",
        ),
    ),
    DatasetDescriptor(
        key="oxidation",
        label="Oxidation states",
        path="materials/oxidation_states/",
        fields=(
            "material_id",
            "oxidation_states",
            "possible_species",
            "last_updated",
        ),
    ),
    DatasetDescriptor(
        key="provenance",
        label="Provenance",
        path="materials/provenance/",
        fields=(
            "material_id",
            "deprecated",
            "theoretical",
            "calculations",
            "last_updated",
        ),
    ),
    DatasetDescriptor(
        key=TASKS_DATASET,
        label="Calculation tasks",
        path="materials/tasks/",
        fields=(
            "task_id",
            "material_id",
            "formula_pretty",
            "task_type",
            "state",
            "energy_per_atom",
            "last_updated",
        ),
        cardinality=Cardinality.MULTIPLE,
        limit=5,
    ),
    DatasetDescriptor(
        key="surface",
        label="Surface properties",
        path="materials/surface_properties/",
        fields=(
            "material_id",
            "weighted_surface_energy",
            "weighted_surface_energy_EV_PER_ANG2",
            "surface_anisotropy",
            "weighted_work_function",
            "has_reconstructed",
            "surfaces",
        ),
    ),
    DatasetDescriptor(
        key=SUBSTRATES_DATASET,
        label="Epitaxial substrates",
        path="materials/substrates/",
        fields=(
            "sub_form",
            "sub_id",
            "film_orient",
            "orient",
            "area",
            "energy",
            "_norients",
        ),
        cardinality=Cardinality.MULTIPLE,
        limit=8,
    ),
    DatasetDescriptor(
        key="eos",
        label="Equation of state",
        path="materials/eos/",
        fields=(
            "material_id",
            "eos",
            "energies",
            "volumes",
        ),
    ),
)

DATASETS: dict[str, DatasetDescriptor] = {d.key: d for d in _DESCRIPTORS}

DATASET_KEYS: tuple[str, ...] = tuple(DATASETS)

# Default selection: everything except tasks, which needs explicit task ids
DEFAULT_DATASETS: tuple[str, ...] = tuple(
    key for key in DATASET_KEYS if key != TASKS_DATASET
)


def is_known_dataset(key: object) -> bool:
    """Check whether a value names a registered dataset."""
    return isinstance(key, str) and key in DATASETS


def get_descriptor(key: str) -> DatasetDescriptor:
    """Look up a dataset descriptor.

    Raises:
        ClientInputError: If the key is not registered
    """
    try:
        return DATASETS[key]
    except KeyError:
        raise ClientInputError(
            "datasets",
            f"Unknown dataset: {key}. Known: {', '.join(DATASET_KEYS)}",
        ) from None


def default_datasets() -> list[str]:
    """Dataset keys used when the caller does not choose any."""
    return list(DEFAULT_DATASETS)


def split_keys(value: str | Iterable[str] | None) -> list[str]:
    """Split a comma separated string or list into trimmed, non-empty entries."""
    if value is None:
        return []
    entries = value.split(",") if isinstance(value, str) else list(value)
    return [e.strip() for e in entries if isinstance(e, str) and e.strip()]


def parse_datasets(value: str | Iterable[str] | None) -> list[str]:
    """Parse a dataset selection into known keys.

    Accepts a comma separated string or a list. Unknown keys are dropped and
    duplicates collapsed; an empty result falls back to the default set.
    """
    selected: list[str] = []
    for entry in split_keys(value):
        if not is_known_dataset(entry):
            logger.debug("Ignoring unknown dataset %r", entry)
            continue
        if entry not in selected:
            selected.append(entry)
    return selected or default_datasets()


def resolve_datasets(
    value: str | Iterable[str] | None,
    task_ids: Iterable[str] | None = None,
) -> list[str]:
    """Apply the task-id rule on top of parse_datasets.

    Supplying task ids includes the tasks dataset; without task ids it is
    removed from the selection.
    """
    selected = parse_datasets(value)
    if split_keys(task_ids):
        if TASKS_DATASET not in selected:
            selected.append(TASKS_DATASET)
        return selected
    return [key for key in selected if key != TASKS_DATASET]
