"""Enrollment tools."""

from shared.models import DeclarativeTool, ParameterBinding, ToolAnnotations
from catalog.common import PAGINATION_PROPERTIES, RESPONSE_FORMAT_PROPERTY, query_params

LIST_ENROLLMENTS = DeclarativeTool(
    name="list-enrollments",
    description="""Purpose: Retrieves a paginated list of enrollments, optionally filtered by user, course or status.

Returns: Enrollment records (user, course, status, completion, dates) and pagination info.

Usage Guidance:
  - Filter by user_id to see one learner's courses.
  - Filter by course_id to see who is enrolled in a course.
  - Use get-enrollment-details for a single enrollment.""",
    input_schema={
        "type": "object",
        "properties": {
            "user_id": {
                "type": "string",
                "description": "Filter enrollments by user ID"
            },
            "course_id": {
                "type": "string",
                "description": "Filter enrollments by course ID"
            },
            "status": {
                "type": "string",
                "description": "Filter by enrollment status (e.g., subscribed, in_progress, completed)"
            },
            **PAGINATION_PROPERTIES,
            **RESPONSE_FORMAT_PROPERTY,
        },
    },
    method="GET",
    path_template="learn/v1/enrollments",
    parameters=query_params("user_id", "course_id", "status", "page", "page_size"),
    annotations=ToolAnnotations(
        title="List Enrollments",
        read_only=True,
        destructive=False,
        idempotent=True,
        open_world=True,
    ),
)

GET_ENROLLMENT = DeclarativeTool(
    name="get-enrollment-details",
    description="Retrieves completion, score and date details for a single enrollment.",
    input_schema={
        "type": "object",
        "properties": {
            "enrollment_id": {
                "type": "string",
                "minLength": 1,
                "description": "The unique enrollment ID"
            },
        },
        "required": ["enrollment_id"],
    },
    method="GET",
    path_template="learn/v1/enrollments/{enrollment_id}",
    parameters=[ParameterBinding(name="enrollment_id", location="path")],
    annotations=ToolAnnotations(
        title="Get Enrollment Details",
        read_only=True,
        destructive=False,
        idempotent=True,
        open_world=False,
    ),
)

ENROLLMENT_TOOLS = [LIST_ENROLLMENTS, GET_ENROLLMENT]
