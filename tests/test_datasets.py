"""Tests for the dataset registry and per-dataset shaping."""

from __future__ import annotations

import pytest

from materials_gateway.assembler import (
    assemble_response,
    reconcile_substrate,
    shape_dataset,
)
from materials_gateway.datasets import (
    DATASET_KEYS,
    DATASETS,
    DEFAULT_DATASETS,
    Cardinality,
    get_descriptor,
    is_known_dataset,
    parse_datasets,
    resolve_datasets,
)
from materials_gateway.errors import ClientInputError
from materials_gateway.models import MaterialPropertyResponse

# =============================================================================
# Registry
# =============================================================================


class TestRegistry:
    """Tests for the dataset descriptors."""

    def test_registered_keys(self):
        assert set(DATASET_KEYS) == {
            "dielectric",
            "elasticity",
            "piezoelectric",
            "absorption",
            "thermo",
            "magnetism",
            "oxidation",
            "provenance",
            "tasks",
            "surface",
            "substrates",
            "eos",
        }

    def test_default_selection_excludes_tasks(self):
        assert "tasks" not in DEFAULT_DATASETS
        assert len(DEFAULT_DATASETS) == len(DATASET_KEYS) - 1

    def test_multiple_datasets(self):
        multiple = {key for key, d in DATASETS.items() if d.cardinality is Cardinality.MULTIPLE}
        assert multiple == {"tasks", "substrates"}
        assert DATASETS["tasks"].result_limit == 5
        assert DATASETS["substrates"].result_limit == 8

    def test_single_datasets_request_one_row(self):
        for descriptor in DATASETS.values():
            if not descriptor.is_multiple:
                assert descriptor.result_limit == 1

    def test_paths_are_relative(self):
        for descriptor in DATASETS.values():
            assert not descriptor.path.startswith("/")
            assert descriptor.path.endswith("/")

    def test_get_descriptor_unknown(self):
        with pytest.raises(ClientInputError) as exc_info:
            get_descriptor("phonons")
        assert exc_info.value.status_code == 400
        assert "phonons" in str(exc_info.value)

    @pytest.mark.parametrize("value", ["thermo", "eos"])
    def test_is_known(self, value):
        assert is_known_dataset(value)

    @pytest.mark.parametrize("value", ["Thermo", "", None, 3])
    def test_is_not_known(self, value):
        assert not is_known_dataset(value)

    def test_to_dict(self):
        assert DATASETS["substrates"].to_dict() == {
            "key": "substrates",
            "label": "Epitaxial substrates",
            "path": "materials/substrates/",
            "cardinality": "multiple",
            "limit": 8,
        }


class TestDatasetSelection:
    """Tests for parse_datasets and resolve_datasets."""

    def test_parse_string(self):
        assert parse_datasets(" thermo , eos ,thermo") == ["thermo", "eos"]

    def test_parse_empty_falls_back(self):
        assert parse_datasets("") == list(DEFAULT_DATASETS)
        assert parse_datasets(["nope"]) == list(DEFAULT_DATASETS)

    def test_resolve_adds_tasks_with_ids(self):
        assert resolve_datasets(["eos"], ["mp-1"]) == ["eos", "tasks"]

    def test_resolve_keeps_single_tasks_entry(self):
        assert resolve_datasets("tasks,eos", "mp-1") == ["tasks", "eos"]

    def test_resolve_drops_tasks_without_ids(self):
        assert resolve_datasets("tasks,eos", ["  "]) == ["eos"]


# =============================================================================
# Shaping and assembly
# =============================================================================


class TestShaping:
    """Tests for shape_dataset and assemble_response."""

    def test_single_takes_first_entry(self):
        entries = [{"material_id": "mp-1", "k_vrh": 1}, {"material_id": "mp-1", "k_vrh": 2}]
        assert shape_dataset(DATASETS["elasticity"], entries) == entries[0]

    def test_single_empty_is_none(self):
        assert shape_dataset(DATASETS["thermo"], []) is None

    def test_multiple_capped_at_limit(self):
        entries = [{"task_id": f"mp-{i}"} for i in range(9)]
        shaped = shape_dataset(DATASETS["tasks"], entries)
        assert shaped == entries[:5]

    def test_multiple_empty_is_empty_list(self):
        assert shape_dataset(DATASETS["tasks"], []) == []

    def test_substrates_expose_norients(self):
        entries = [{"sub_form": "MgO", "_norients": 3}]
        assert shape_dataset(DATASETS["substrates"], entries) == [
            {"sub_form": "MgO", "norients": 3}
        ]

    def test_canonical_norients_wins(self):
        assert reconcile_substrate({"norients": 5, "_norients": 3}) == {"norients": 5}

    def test_non_mapping_substrate_untouched(self):
        assert reconcile_substrate("raw") == "raw"

    def test_assemble_drops_none(self):
        response = assemble_response(
            "mp-149",
            {"thermo": {"energy_per_atom": -5.4}, "eos": None, "tasks": []},
        )
        assert isinstance(response, MaterialPropertyResponse)
        assert "thermo" in response
        assert "eos" not in response
        assert response["tasks"] == []
        assert response.get("eos", "missing") == "missing"
        assert response.to_dict() == {
            "material_id": "mp-149",
            "thermo": {"energy_per_atom": -5.4},
            "tasks": [],
        }
