"""Code tools.

Tools that need more than one backend call, or reshape the response,
implement their own process step against the ApiClient.
"""

from typing import Any
from urllib.parse import quote

from shared.logging import get_logger
from shared.models import CodeTool, RequestContext, ToolAnnotations
from gateway.api_client import ApiClient

logger = get_logger(__name__)

DASHBOARD_PAGE_SIZE = 200


def _unwrap(response: Any) -> dict[str, Any]:
    """Platform responses wrap their payload in ``data``."""
    if isinstance(response, dict) and isinstance(response.get("data"), dict):
        return response["data"]
    return response if isinstance(response, dict) else {}


async def get_my_profile(
    arguments: dict[str, Any],
    context: RequestContext,
    api: ApiClient
) -> dict[str, Any]:
    user = _unwrap(await api.get("manage/v1/user/session"))
    return {
        "user_id": user.get("id"),
        "username": user.get("username"),
        "first_name": user.get("firstname"),
        "last_name": user.get("lastname"),
        "email": user.get("email"),
        "user_level": user.get("user_level"),
        "timezone": user.get("timezone"),
        "language": user.get("language"),
    }


async def get_learner_dashboard(
    arguments: dict[str, Any],
    context: RequestContext,
    api: ApiClient
) -> dict[str, Any]:
    """Profile plus every enrollment of one learner, in a single result."""
    user_id = arguments["user_id"]

    user = _unwrap(await api.get(f"manage/v1/user/{quote(str(user_id), safe='')}"))
    enrollments_response = await api.get(
        "learn/v1/enrollments",
        params={"id_user": user_id, "page": 0, "page_size": DASHBOARD_PAGE_SIZE},
    )
    enrollments = _unwrap(enrollments_response).get("items") or []

    logger.debug(
        "Dashboard assembled",
        user_id=user_id,
        enrollment_count=len(enrollments),
        session_id=context.session_id,
    )

    return {
        "user": {
            "user_id": user.get("user_id"),
            "username": user.get("username"),
            "first_name": user.get("first_name"),
            "last_name": user.get("last_name"),
            "email": user.get("email"),
            "role": user.get("role"),
            "department": user.get("department"),
            "branch": user.get("branch_name"),
            "status": user.get("status"),
        },
        "enrollments": [
            {
                "id_course": e.get("id_course"),
                "course_name": e.get("course_name") or e.get("name"),
                "status": e.get("status"),
                "completion_percentage": e.get("completion_percentage", e.get("completion")),
                "score": e.get("score"),
                "date_inscr": e.get("date_inscr"),
                "date_complete": e.get("date_complete"),
            }
            for e in enrollments
        ],
        "total_enrollments": len(enrollments),
    }


MY_PROFILE = CodeTool(
    name="get_my_profile",
    description="""Purpose: Returns the current authenticated user's profile.

Returns: User ID, username, first name, last name, email, user level, timezone, and language.

Usage Guidance:
  - No arguments needed; returns the profile of whoever is authenticated.
  - Call this first when you need the current user's ID for other tools (e.g. get_learner_dashboard).
  - Accessible to all users, not just admins.""",
    input_schema={"type": "object", "properties": {}},
    annotations=ToolAnnotations(
        title="My Profile",
        read_only=True,
        destructive=False,
        idempotent=True,
        open_world=False,
    ),
    process=get_my_profile,
)

LEARNER_DASHBOARD = CodeTool(
    name="get_learner_dashboard",
    description="""Purpose: Returns a learner's profile plus all course enrollments with progress details in a single call.

Returns: User profile (name, email, role, department) and the enrollment list (course name, status, completion %, score, dates).

Usage Guidance:
  - Provide the user_id for the learner.
  - Use get_my_profile first to get the current user's ID.""",
    input_schema={
        "type": "object",
        "properties": {
            "user_id": {
                "type": "string",
                "minLength": 1,
                "description": "The user ID to get the dashboard for"
            },
        },
        "required": ["user_id"],
    },
    annotations=ToolAnnotations(
        title="Learner Dashboard",
        read_only=True,
        destructive=False,
        idempotent=True,
        open_world=False,
    ),
    process=get_learner_dashboard,
)

WORKFLOW_TOOLS = [MY_PROFILE, LEARNER_DASHBOARD]
