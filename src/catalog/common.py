"""Schema fragments shared by the catalog tools."""

from shared.models import ParameterBinding, ParameterLocation

PAGINATION_PROPERTIES = {
    "page": {
        "type": "integer",
        "minimum": 0,
        "description": "The current offset by number of pages. Offset is zero-based."
    },
    "page_size": {
        "type": "integer",
        "minimum": 1,
        "maximum": 200,
        "description": "The maximum number of records per page for this response."
    },
}

RESPONSE_FORMAT_PROPERTY = {
    "response_format": {
        "type": "string",
        "enum": ["json", "markdown"],
        "default": "json",
        "description": (
            "Response format: 'json' (default) returns raw API data, "
            "'markdown' returns a concise formatted summary."
        )
    },
}


def query_params(*names: str) -> list[ParameterBinding]:
    return [ParameterBinding(name=name, location=ParameterLocation.QUERY) for name in names]
