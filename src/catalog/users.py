"""User tools."""

from shared.models import DeclarativeTool, ParameterBinding, ToolAnnotations
from catalog.common import PAGINATION_PROPERTIES, RESPONSE_FORMAT_PROPERTY, query_params

LIST_USERS = DeclarativeTool(
    name="list-users",
    description="""Purpose: Retrieves a paginated list of platform users.

Returns: User records (id, username, name, email, level, status) and pagination info.

Usage Guidance:
  - Use search_text to find a user by name or email.
  - Requires administrator permissions on the platform.
  - Use get_my_profile instead to identify the current caller.""",
    input_schema={
        "type": "object",
        "properties": {
            "search_text": {
                "type": "string",
                "description": "Search users by name or email"
            },
            **PAGINATION_PROPERTIES,
            **RESPONSE_FORMAT_PROPERTY,
        },
    },
    method="GET",
    path_template="manage/v1/user",
    parameters=query_params("search_text", "page", "page_size"),
    annotations=ToolAnnotations(
        title="List Users",
        read_only=True,
        destructive=False,
        idempotent=True,
        open_world=True,
    ),
)

GET_USER = DeclarativeTool(
    name="get-user",
    description="Retrieves the full profile of a single user by ID.",
    input_schema={
        "type": "object",
        "properties": {
            "user_id": {
                "type": "string",
                "minLength": 1,
                "description": "The unique user ID"
            },
        },
        "required": ["user_id"],
    },
    method="GET",
    path_template="manage/v1/user/{user_id}",
    parameters=[ParameterBinding(name="user_id", location="path")],
    annotations=ToolAnnotations(
        title="Get User Details",
        read_only=True,
        destructive=False,
        idempotent=True,
        open_world=False,
    ),
)

USER_TOOLS = [LIST_USERS, GET_USER]
