"""Global search across platform content."""

from shared.models import DeclarativeTool, ToolAnnotations
from catalog.common import RESPONSE_FORMAT_PROPERTY, query_params

GLOBAL_SEARCH = DeclarativeTool(
    name="global_search",
    description="""Purpose: Searches courses, learning plans, users and other content in one query.

Returns: Matching items across content types and pagination info.

Usage Guidance:
  - Use when you do not know which content type holds what you are looking for.
  - Use response_format='markdown' for a concise summary.""",
    input_schema={
        "type": "object",
        "properties": {
            "criteria": {
                "type": "string",
                "minLength": 1,
                "description": "Search string to query content (e.g. 'compliance training')"
            },
            "page": {
                "type": "integer",
                "minimum": 0,
                "default": 0,
                "description": "Zero-based page offset (default: 0)"
            },
            "page_size": {
                "type": "integer",
                "minimum": 1,
                "maximum": 200,
                "default": 20,
                "description": "Max records per page (default: 20, max: 200)"
            },
            **RESPONSE_FORMAT_PROPERTY,
        },
        "required": ["criteria"],
    },
    method="GET",
    path_template="manage/v1/globalsearch/search",
    parameters=query_params("criteria", "page", "page_size"),
    annotations=ToolAnnotations(
        title="Global Search",
        read_only=True,
        destructive=False,
        idempotent=True,
        open_world=True,
    ),
)

SEARCH_TOOLS = [GLOBAL_SEARCH]
