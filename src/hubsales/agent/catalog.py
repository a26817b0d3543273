from enum import Enum
from functools import lru_cache
from typing import Any, Dict, List


class ToolName(str, Enum):
    WEB_SEARCH = "web_search"
    GET_INVENTORY = "get_inventory"
    UPDATE_CONTEXT = "update_context"
    GENERATE_FILE = "generate_file"


SEARCH_TYPES = ["general", "brand_research", "company_news", "competitors"]
INVENTORY_QUERY_TYPES = [
    "all_publishers",
    "publisher_details",
    "placements_by_channel",
    "search",
    "summary",
]
CHANNELS = ["print", "digital", "newsletter", "radio", "podcast", "events", "social"]
FILE_TYPES = ["proposal_md", "package_csv"]


@lru_cache(maxsize=1)
def get_tool_catalog() -> List[Dict[str, Any]]:
    """Return OpenAI tool schemas for every assistant tool (cached).

    Returns:
        List[Dict[str, Any]]: Tool schemas in OpenAI function format, in
            ToolName order.
    """
    return [
        {
            "type": "function",
            "function": {
                "name": ToolName.WEB_SEARCH.value,
                "description": (
                    "Search the web for information about brands, companies, competitors, "
                    "or industry topics. Choose the appropriate search_type for best results."
                ),
                "parameters": {
                    "type": "object",
                    "properties": {
                        "search_type": {
                            "type": "string",
                            "enum": SEARCH_TYPES,
                            "description": (
                                "Type of search: general (default), brand_research (deep dive "
                                "on a company), company_news (recent announcements), "
                                "competitors (competitive analysis)"
                            ),
                        },
                        "query": {
                            "type": "string",
                            "description": "The search query or brand/company name",
                        },
                        "brand_url": {
                            "type": "string",
                            "description": "Optional: brand website URL for more targeted brand research",
                        },
                        "industry": {
                            "type": "string",
                            "description": "Optional: industry context for competitor analysis",
                        },
                    },
                    "required": ["query"],
                },
            },
        },
        {
            "type": "function",
            "function": {
                "name": ToolName.GET_INVENTORY.value,
                "description": (
                    "Query the hub's publisher and inventory data. Use this to find publishers, "
                    "placements, pricing, audience data, and available channels."
                ),
                "parameters": {
                    "type": "object",
                    "properties": {
                        "query_type": {
                            "type": "string",
                            "enum": INVENTORY_QUERY_TYPES,
                            "description": (
                                "Type of query: all_publishers (list all), publisher_details "
                                "(specific publisher), placements_by_channel (filter by channel), "
                                "search (text search), summary (aggregate stats)"
                            ),
                        },
                        "publisher_id": {
                            "type": "string",
                            "description": "Specific publisher ID (for publisher_details)",
                        },
                        "channel": {
                            "type": "string",
                            "enum": CHANNELS,
                            "description": "Channel to filter by (for placements_by_channel)",
                        },
                        "search_term": {
                            "type": "string",
                            "description": "Search term for finding publishers (for search query_type)",
                        },
                    },
                    "required": ["query_type"],
                },
            },
        },
        {
            "type": "function",
            "function": {
                "name": ToolName.UPDATE_CONTEXT.value,
                "description": (
                    "Save or update the conversation context with brand/campaign information. "
                    "Use this when the user provides information about a brand, budget, "
                    "timeline, or campaign details that should be remembered."
                ),
                "parameters": {
                    "type": "object",
                    "properties": {
                        "brand_name": {"type": "string", "description": "Name of the brand/company"},
                        "brand_url": {"type": "string", "description": "Brand website URL"},
                        "budget_monthly": {"type": "number", "description": "Monthly budget amount"},
                        "budget_total": {"type": "number", "description": "Total campaign budget"},
                        "campaign_duration": {
                            "type": "string",
                            "description": 'Campaign duration (e.g., "3 months", "Q2 2026")',
                        },
                        "target_audience": {
                            "type": "string",
                            "description": "Target audience description",
                        },
                        "geographic_focus": {
                            "type": "string",
                            "description": "Geographic focus areas",
                        },
                        "objectives": {
                            "type": "array",
                            "items": {"type": "string"},
                            "description": "Campaign objectives",
                        },
                        "notes": {"type": "string", "description": "Additional notes"},
                    },
                },
            },
        },
        {
            "type": "function",
            "function": {
                "name": ToolName.GENERATE_FILE.value,
                "description": (
                    "Generate a downloadable file. Use this when the user asks for a proposal "
                    "(markdown) or package export (CSV). The content should be complete and "
                    "well-formatted."
                ),
                "parameters": {
                    "type": "object",
                    "properties": {
                        "file_type": {
                            "type": "string",
                            "enum": FILE_TYPES,
                            "description": "Type of file to generate",
                        },
                        "filename": {
                            "type": "string",
                            "description": (
                                "Suggested filename (without extension, will be added automatically)"
                            ),
                        },
                        "content": {
                            "type": "string",
                            "description": (
                                "Complete file content (markdown for proposals, CSV for packages)"
                            ),
                        },
                    },
                    "required": ["file_type", "content"],
                },
            },
        },
    ]
