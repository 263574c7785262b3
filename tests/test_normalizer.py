"""Unit tests for request normalization.

Tests cover:
- Scalar parsers (strings, lists, numbers, booleans)
- Range parsing and repair of inverted bounds
- Pagination clamping and sort defaults
- Detail request dataset/task-id resolution
"""

from __future__ import annotations

import pytest

from materials_gateway.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, MIN_PAGE_SIZE
from materials_gateway.datasets import DEFAULT_DATASETS
from materials_gateway.models import DetailRequest, RangeFilter, SearchParams
from materials_gateway.normalizer import (
    RequestKind,
    normalize,
    normalize_detail_request,
    normalize_pagination,
    normalize_search_params,
    parse_boolean,
    parse_number,
    parse_string_list,
)

# =============================================================================
# Scalar parsers
# =============================================================================


class TestParseNumber:
    """Tests for parse_number."""

    @pytest.mark.parametrize(
        "value, expected",
        [(1.5, 1.5), (0, 0), ("2.25", 2.25), (" -1 ", -1.0), ("1e2", 100.0)],
    )
    def test_accepts_finite_numbers(self, value, expected):
        assert parse_number(value) == expected

    @pytest.mark.parametrize(
        "value",
        [None, "", "   ", "abc", "inf", "NaN", float("nan"), float("inf"), True, [], {}],
    )
    def test_rejects_everything_else(self, value):
        assert parse_number(value) is None

    @pytest.mark.parametrize("value", [10**400, -(10**400)])
    def test_integer_beyond_float_range_is_absent(self, value):
        assert parse_number(value) is None

    def test_large_integer_within_float_range_kept(self):
        assert parse_number(10**300) == 10**300

    @pytest.mark.parametrize("value", ["1_000", "1_0.5", "infinity", "-Infinity", "1e400"])
    def test_rejects_non_decimal_strings(self, value):
        assert parse_number(value) is None


class TestParseStringList:
    """Tests for parse_string_list."""

    def test_comma_separated_string(self):
        assert parse_string_list(" Li, Fe ,,O") == ("Li", "Fe", "O")

    def test_native_list_is_trimmed_and_deduplicated(self):
        assert parse_string_list(["Li", " Fe", "Li", ""]) == ("Li", "Fe")

    def test_non_string_entries_dropped(self):
        assert parse_string_list([1, "O", None]) == ("O",)

    @pytest.mark.parametrize("value", [[], "", " , ", ["  "], None, 42])
    def test_empty_result_is_absent(self, value):
        assert parse_string_list(value) is None


class TestParseBoolean:
    """Tests for parse_boolean."""

    @pytest.mark.parametrize(
        "value, expected",
        [(True, True), (False, False), ("true", True), ("FALSE", False), (" True ", True)],
    )
    def test_recognized_values(self, value, expected):
        assert parse_boolean(value) is expected

    @pytest.mark.parametrize("value", ["yes", "1", 1, 0, None, "tru"])
    def test_other_values_absent(self, value):
        assert parse_boolean(value) is None


# =============================================================================
# Search normalization
# =============================================================================


class TestNormalizeSearchParams:
    """Tests for normalize_search_params."""

    def test_formula_alias_and_inverted_range(self):
        """Legacy 'material' key and swapped band gap bounds are repaired."""
        params = normalize_search_params(
            {"material": "LiFePO4", "bandGapMin": "1.5", "bandGapMax": "0.5"}
        )
        assert params.formula == "LiFePO4"
        assert params.band_gap == RangeFilter(min=0.5, max=1.5)

    @pytest.mark.parametrize(
        "lower, upper",
        [(5, 1), (0.3, -0.3), ("10", "2"), (1e6, 1e-6)],
    )
    def test_inverted_ranges_are_swapped(self, lower, upper):
        params = normalize_search_params({"density": {"min": lower, "max": upper}})
        assert params.density.min <= params.density.max
        assert params.density == RangeFilter(
            min=parse_number(upper), max=parse_number(lower)
        )

    def test_half_open_range(self):
        params = normalize_search_params({"volumeMin": "100"})
        assert params.volume == RangeFilter(min=100.0, max=None)

    def test_unparseable_bound_is_absent(self):
        params = normalize_search_params({"energyAboveHull": {"min": "x", "max": 0.1}})
        assert params.energy_above_hull == RangeFilter(min=None, max=0.1)

    def test_range_without_any_bound_is_absent(self):
        params = normalize_search_params({"bandGap": {"min": "", "max": None}})
        assert params.band_gap is None

    def test_snake_case_range_aliases(self):
        params = normalize_search_params(
            {"band_gap_min": "1", "formation_energy_per_atom_max": "-0.5"}
        )
        assert params.band_gap == RangeFilter(min=1.0)
        assert params.formation_energy == RangeFilter(max=-0.5)

    def test_nested_bound_wins_over_flat_key(self):
        params = normalize_search_params(
            {"totalMagnetization": {"min": 1}, "totalMagnetizationMin": 9}
        )
        assert params.total_magnetization == RangeFilter(min=1)

    def test_strings_trimmed_and_blank_dropped(self):
        params = normalize_search_params(
            {"formula": "  Fe2O3 ", "chemsys": "   ", "crystal_system": " Cubic "}
        )
        assert params.formula == "Fe2O3"
        assert params.chemsys is None
        assert params.crystal_system == "Cubic"

    def test_array_fields_and_aliases(self):
        params = normalize_search_params(
            {
                "elements": "Li,Fe,Li",
                "exclude_elements": ["O"],
                "possibleSpecies": "Fe2+, Fe3+",
                "hasProps": [],
            }
        )
        assert params.elements == ("Li", "Fe")
        assert params.exclude_elements == ("O",)
        assert params.possible_species == ("Fe2+", "Fe3+")
        assert params.has_props is None

    @pytest.mark.parametrize(
        "value, expected",
        [
            (1, MIN_PAGE_SIZE),
            (0, MIN_PAGE_SIZE),
            ("-4", MIN_PAGE_SIZE),
            (6, 6),
            ("12.9", 12),
            (60, 60),
            (61, MAX_PAGE_SIZE),
            (1000, MAX_PAGE_SIZE),
            (None, DEFAULT_PAGE_SIZE),
            ("abc", DEFAULT_PAGE_SIZE),
            (float("nan"), DEFAULT_PAGE_SIZE),
        ],
    )
    def test_page_size_clamped(self, value, expected):
        params = normalize_search_params({"pageSize": value})
        assert params.page_size == expected
        assert MIN_PAGE_SIZE <= params.page_size <= MAX_PAGE_SIZE

    def test_oversized_integers_never_raise(self):
        """Integers from a JSON body can exceed the float range."""
        huge = 10**400
        params = normalize_search_params(
            {"pageSize": huge, "page": huge, "bandGapMin": huge, "density": {"max": -huge}}
        )
        assert params.page_size == DEFAULT_PAGE_SIZE
        assert params.page == 1
        assert params.band_gap is None
        assert params.density is None

    def test_limit_alias_for_page_size(self):
        assert normalize_search_params({"limit": "24"}).page_size == 24

    @pytest.mark.parametrize("value, expected", [("2.7", 2), (-3, 1), ("zero", 1), (5, 5)])
    def test_page_floored_and_at_least_one(self, value, expected):
        assert normalize_search_params({"page": value}).page == expected

    @pytest.mark.parametrize(
        "value", ["nsites", "DENSITY", "", None, 3, "-band_gap"]
    )
    def test_unknown_sort_field_defaults(self, value):
        params = normalize_search_params({"sortField": value})
        assert params.sort_field == "energy_above_hull"

    def test_sort_alias_and_order(self):
        params = normalize_search_params({"sort": "band_gap", "sortOrder": " DESC "})
        assert params.sort_field == "band_gap"
        assert params.sort_order == "desc"

    def test_invalid_sort_order_defaults_to_asc(self):
        assert normalize_search_params({"sortOrder": "down"}).sort_order == "asc"

    def test_explicit_false_is_stable_preserved(self):
        assert normalize_search_params({"isStable": False}).is_stable is False
        assert normalize_search_params({"is_stable": "false"}).is_stable is False

    def test_is_stable_defaults_to_true(self):
        assert normalize_search_params({"isStable": "maybe"}).is_stable is True

    def test_theoretical_only_when_given(self):
        assert normalize_search_params({}).theoretical is None
        assert normalize_search_params({"theoretical": "TRUE"}).theoretical is True

    @pytest.mark.parametrize("raw", [None, "formula=Si", 42, ["a"], {}])
    def test_non_mapping_input_yields_defaults(self, raw):
        assert normalize_search_params(raw) == SearchParams()

    def test_to_dict_is_accepted_back_unchanged(self):
        params = normalize_search_params(
            {
                "formula": "LiFePO4",
                "elements": ["Li", "Fe"],
                "bandGap": {"min": 0, "max": 2},
                "isStable": False,
                "page": 2,
                "pageSize": 12,
            }
        )
        assert normalize_search_params(params.to_dict()) == params


class TestNormalizePagination:
    """Tests for normalize_pagination."""

    def test_defaults(self):
        assert normalize_pagination() == (1, DEFAULT_PAGE_SIZE)

    def test_clamps_both(self):
        assert normalize_pagination(0, 500) == (1, MAX_PAGE_SIZE)


# =============================================================================
# Detail normalization
# =============================================================================


class TestNormalizeDetailRequest:
    """Tests for normalize_detail_request."""

    def test_defaults_exclude_tasks(self):
        request = normalize_detail_request(" mp-149 ")
        assert request == DetailRequest(material_id="mp-149", datasets=DEFAULT_DATASETS)
        assert "tasks" not in request.datasets

    def test_unknown_and_duplicate_datasets_dropped(self):
        request = normalize_detail_request("mp-149", {"datasets": "thermo,bogus,thermo,eos"})
        assert request.datasets == ("thermo", "eos")

    def test_only_unknown_datasets_fall_back_to_default(self):
        request = normalize_detail_request("mp-149", {"datasets": "bogus"})
        assert request.datasets == DEFAULT_DATASETS

    def test_task_ids_include_tasks(self):
        request = normalize_detail_request(
            "mp-149", {"datasets": "thermo", "taskIds": "mp-1, mp-2,,mp-1"}
        )
        assert request.datasets == ("thermo", "tasks")
        assert request.task_ids == ("mp-1", "mp-2")

    def test_tasks_removed_without_task_ids(self):
        request = normalize_detail_request("mp-149", {"datasets": ["tasks", "eos"]})
        assert request.datasets == ("eos",)
        assert request.task_ids == ()

    def test_normalize_dispatches_on_kind(self):
        detail = normalize({"materialId": "mp-1", "task_ids": ["t-1"]}, RequestKind.DETAIL)
        assert isinstance(detail, DetailRequest)
        assert detail.material_id == "mp-1"
        assert "tasks" in detail.datasets

        search = normalize({"formula": "Si"}, "search")
        assert isinstance(search, SearchParams)
        assert search.formula == "Si"

    @pytest.mark.parametrize("kind", ["bogus", "", None, 3])
    def test_unknown_kind_treated_as_search(self, kind):
        result = normalize({"formula": "Si"}, kind)
        assert isinstance(result, SearchParams)
        assert result.formula == "Si"
