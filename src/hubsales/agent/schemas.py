"""Validated input models for the assistant tools.

Model-issued arguments are parsed into these before any handler runs, so a
handler only ever sees well-typed values.
"""

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

FILE_TYPE_ALIASES = {
    "document": "proposal_md",
    "proposal": "proposal_md",
    "tabular-export": "package_csv",
    "tabular_export": "package_csv",
    "csv": "package_csv",
}

QUERY_TYPE_ALIASES = {
    "all": "all_publishers",
    "details-by-id": "publisher_details",
    "details": "publisher_details",
    "by-channel": "placements_by_channel",
    "text-search": "search",
}


class ToolInput(BaseModel):
    model_config = ConfigDict(extra="ignore")


class WebSearchInput(ToolInput):
    query: str = Field(min_length=1)
    search_type: Literal["general", "brand_research", "company_news", "competitors"] = "general"
    brand_url: Optional[str] = None
    industry: Optional[str] = None

    @field_validator("query", mode="before")
    @classmethod
    def _strip_query(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class GetInventoryInput(ToolInput):
    query_type: Literal[
        "all_publishers", "publisher_details", "placements_by_channel", "search", "summary"
    ]
    publisher_id: Optional[str] = None
    channel: Optional[
        Literal["print", "digital", "newsletter", "radio", "podcast", "events", "social"]
    ] = None
    search_term: Optional[str] = None

    @field_validator("query_type", mode="before")
    @classmethod
    def _resolve_alias(cls, value: Any) -> Any:
        if isinstance(value, str):
            return QUERY_TYPE_ALIASES.get(value.strip().lower(), value)
        return value

    @model_validator(mode="after")
    def _require_kind_fields(self) -> "GetInventoryInput":
        if self.query_type == "publisher_details" and not self.publisher_id:
            raise ValueError("publisher_id is required for publisher_details")
        if self.query_type == "placements_by_channel" and not self.channel:
            raise ValueError("channel is required for placements_by_channel")
        if self.query_type == "search" and not self.search_term:
            raise ValueError("search_term is required for search")
        return self


class UpdateContextInput(ToolInput):
    brand_name: Optional[str] = None
    brand_url: Optional[str] = None
    budget_monthly: Optional[float] = Field(default=None, ge=0)
    budget_total: Optional[float] = Field(default=None, ge=0)
    campaign_duration: Optional[str] = None
    target_audience: Optional[str] = None
    geographic_focus: Optional[str] = None
    objectives: Optional[List[str]] = None
    notes: Optional[str] = None


class GenerateFileInput(ToolInput):
    file_type: Literal["proposal_md", "package_csv"]
    content: str = Field(min_length=1)
    filename: Optional[str] = None

    @field_validator("file_type", mode="before")
    @classmethod
    def _resolve_alias(cls, value: Any) -> Any:
        if isinstance(value, str):
            return FILE_TYPE_ALIASES.get(value.strip().lower(), value)
        return value
