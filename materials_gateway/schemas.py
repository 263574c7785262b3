"""
Pydantic models for the search wire contract.

These models describe the summary documents returned by the upstream
``materials/summary`` endpoint and the paged envelope the gateway returns.

Schema Compatibility:
- Field names use the upstream snake_case names
- Unknown upstream fields are ignored
- ``meta.message`` is omitted when upstream did not send one
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SymmetryInfo(BaseModel):
    """Symmetry sub-record of a material summary."""

    model_config = ConfigDict(extra="ignore")

    crystal_system: Optional[str] = Field(default=None, description="Crystal system")
    symbol: Optional[str] = Field(default=None, description="Space group symbol")
    number: Optional[int] = Field(default=None, description="Space group number")
    point_group: Optional[str] = Field(default=None, description="Point group")


class MaterialSummary(BaseModel):
    """
    One catalog entry from the summary search.

    Numeric properties are optional because the upstream projection may omit
    them for sparse records.
    """

    model_config = ConfigDict(extra="ignore")

    material_id: str = Field(..., description="Catalog identifier (e.g. 'mp-149')")
    formula_pretty: Optional[str] = Field(default=None, description="Pretty formula")
    elements: List[str] = Field(default_factory=list, description="Element symbols")
    nelements: Optional[int] = Field(default=None, description="Number of elements")
    nsites: Optional[int] = Field(default=None, description="Number of sites")

    energy_above_hull: Optional[float] = Field(default=None, description="eV/atom")
    formation_energy_per_atom: Optional[float] = Field(default=None, description="eV/atom")
    band_gap: Optional[float] = Field(default=None, description="eV")
    density: Optional[float] = Field(default=None, description="g/cm^3")
    volume: Optional[float] = Field(default=None, description="A^3")
    total_magnetization: Optional[float] = Field(default=None, description="muB/f.u.")
    total_magnetization_normalized_vol: Optional[float] = Field(default=None)

    is_stable: Optional[bool] = Field(default=None, description="On the convex hull")
    theoretical: Optional[bool] = Field(default=None, description="No ICSD match")

    symmetry: Optional[SymmetryInfo] = Field(default=None)
    has_props: List[str] = Field(default_factory=list, description="Data coverage tags")
    warnings: List[str] = Field(default_factory=list)
    calc_types: Dict[str, Optional[str]] = Field(
        default_factory=dict, description="Task id -> calculation type"
    )
    last_updated: Optional[str] = Field(default=None)

    @field_validator("has_props", mode="before")
    @classmethod
    def flatten_has_props(cls, v: Any) -> Any:
        """Accept the upstream {tag: bool} mapping as well as a tag list."""
        if v is None:
            return []
        if isinstance(v, dict):
            return [key for key, present in v.items() if present]
        return v

    @field_validator("elements", "warnings", mode="before")
    @classmethod
    def none_to_list(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("calc_types", mode="before")
    @classmethod
    def none_to_dict(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("last_updated", mode="before")
    @classmethod
    def stringify_timestamp(cls, v: Any) -> Any:
        if v is None or isinstance(v, str):
            return v
        return str(v)


class SearchMeta(BaseModel):
    """Paging metadata of a search response."""

    total_doc: int = Field(..., description="Total matches upstream")
    limit: int = Field(..., description="Page size used")
    skip: int = Field(..., ge=0, description="Row offset used")
    message: Optional[str] = Field(default=None, description="Upstream notice")


class MaterialsPage(BaseModel):
    """A page of material summaries."""

    data: List[MaterialSummary] = Field(default_factory=list)
    meta: SearchMeta

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the outbound JSON shape."""
        return {
            "data": [summary.model_dump(mode="json") for summary in self.data],
            "meta": self.meta.model_dump(exclude_none=True),
        }
