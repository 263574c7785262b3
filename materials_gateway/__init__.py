"""Materials Project search and detail gateway.

This package turns loosely-typed search input into canonical parameters,
compiles them into the Materials Project REST query dialect, and aggregates
per-material sub-resource datasets (elasticity, thermo, substrates, ...)
fetched concurrently into one response.

Usage:
    from materials_gateway import MaterialsGateway

    async with MaterialsGateway() as gateway:
        page = await gateway.search_materials({"elements": "Li,Fe", "pageSize": 12})
        for summary in page.data:
            print(summary.material_id, summary.formula_pretty)

        detail = await gateway.fetch_material_properties("mp-149", ["thermo", "eos"])
"""

from __future__ import annotations

from .settings import GatewaySettings
from .errors import (
    MaterialsAPIError,
    ConfigurationError,
    UpstreamError,
    DecodeError,
    TransportError,
    ClientInputError,
)
from .models import DetailRequest, MaterialPropertyResponse, RangeFilter, SearchParams
from .schemas import MaterialsPage, MaterialSummary, SearchMeta, SymmetryInfo
from .datasets import (
    DATASETS,
    DEFAULT_DATASETS,
    Cardinality,
    DatasetDescriptor,
    get_descriptor,
    is_known_dataset,
)
from .normalizer import RequestKind, normalize, normalize_detail_request, normalize_search_params
from .query import compile_dataset_query, compile_search_query, parse_search_query
from .clients import MpRestClient
from .service import MaterialsGateway

__all__ = [
    # Service (main entry point)
    "MaterialsGateway",
    # Settings
    "GatewaySettings",
    # Errors
    "MaterialsAPIError",
    "ConfigurationError",
    "UpstreamError",
    "DecodeError",
    "TransportError",
    "ClientInputError",
    # Models
    "DetailRequest",
    "MaterialPropertyResponse",
    "RangeFilter",
    "SearchParams",
    "MaterialsPage",
    "MaterialSummary",
    "SearchMeta",
    "SymmetryInfo",
    # Dataset registry
    "DATASETS",
    "DEFAULT_DATASETS",
    "Cardinality",
    "DatasetDescriptor",
    "get_descriptor",
    "is_known_dataset",
    # Normalization and compilation
    "RequestKind",
    "normalize",
    "normalize_detail_request",
    "normalize_search_params",
    "compile_dataset_query",
    "compile_search_query",
    "parse_search_query",
    # Client
    "MpRestClient",
]
