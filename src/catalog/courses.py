"""Course tools.

Browse the course catalog and fetch single courses.
"""

from shared.models import DeclarativeTool, ParameterBinding, ToolAnnotations
from catalog.common import PAGINATION_PROPERTIES, RESPONSE_FORMAT_PROPERTY, query_params

LIST_COURSES = DeclarativeTool(
    name="list-all-courses",
    description="""Purpose: Retrieves a paginated list of all courses from the learning platform.

Returns: Collection of courses with metadata (name, type, description, dates, category, enrollment policy) and pagination info.

Usage Guidance:
  - Use for browsing, searching, and exploring available courses.
  - Use search_text to find courses by name or description keywords.
  - Use category and status filters to narrow results.
  - Use get-a-course when you need full details for a specific course.
  - Supports pagination via page and page_size parameters.""",
    input_schema={
        "type": "object",
        "properties": {
            **PAGINATION_PROPERTIES,
            "search_text": {
                "type": "string",
                "description": "Search courses by name or description."
            },
            "category": {
                "type": "string",
                "description": "Filter courses by category name."
            },
            "status": {
                "type": "string",
                "description": "Filter courses by status (e.g., published, under_maintenance)."
            },
            "sort_by": {
                "type": "string",
                "description": "Sort results by field (e.g., name, date_created)."
            },
            "sort_order": {
                "type": "string",
                "enum": ["asc", "desc"],
                "description": "Sort order: asc or desc."
            },
            **RESPONSE_FORMAT_PROPERTY,
        },
    },
    method="GET",
    path_template="learn/v1/courses",
    parameters=query_params(
        "page", "page_size", "search_text", "category", "status", "sort_by", "sort_order"
    ),
    annotations=ToolAnnotations(
        title="List Courses",
        read_only=True,
        destructive=False,
        idempotent=True,
        open_world=True,
    ),
)

GET_COURSE = DeclarativeTool(
    name="get-a-course",
    description="""Purpose: Retrieves detailed information about a single course by its ID.

Returns: Full course object including name, description, type, settings, enrollment details, and category.

Usage Guidance:
  - Use when you already have a course_id and need its full details.
  - Use list-all-courses first if you need to find a course by name.""",
    input_schema={
        "type": "object",
        "properties": {
            "course_id": {
                "type": "string",
                "minLength": 1,
                "description": "The unique identifier for a course."
            },
        },
        "required": ["course_id"],
    },
    method="GET",
    path_template="learn/v1/courses/{course_id}",
    parameters=[ParameterBinding(name="course_id", location="path")],
    annotations=ToolAnnotations(
        title="Get Course Details",
        read_only=True,
        destructive=False,
        idempotent=True,
        open_world=False,
    ),
)

LIST_CLASSROOMS = DeclarativeTool(
    name="list-all-classrooms",
    description="""Purpose: Retrieves a paginated list of instructor-led (classroom) courses.

Returns: Collection of classroom courses with sessions metadata and pagination info.

Usage Guidance:
  - Use to browse ILT/classroom offerings.
  - Use get-a-classroom for the full details of one classroom.""",
    input_schema={
        "type": "object",
        "properties": {
            **PAGINATION_PROPERTIES,
            "filter": {
                "type": "string",
                "description": "Free-text filter on classroom name."
            },
        },
    },
    method="GET",
    path_template="learn/v1/classroom",
    parameters=query_params("filter", "page", "page_size"),
    annotations=ToolAnnotations(
        title="List Classrooms",
        read_only=True,
        destructive=False,
        idempotent=True,
        open_world=True,
    ),
)

GET_CLASSROOM = DeclarativeTool(
    name="get-a-classroom",
    description="Retrieves detailed information about a single classroom course by its ID.",
    input_schema={
        "type": "object",
        "properties": {
            "id": {
                "type": "string",
                "minLength": 1,
                "description": "The unique identifier for a classroom."
            },
        },
        "required": ["id"],
    },
    method="GET",
    path_template="learn/v1/classroom/{id}",
    parameters=[ParameterBinding(name="id", location="path")],
    annotations=ToolAnnotations(
        title="Get Classroom Details",
        read_only=True,
        destructive=False,
        idempotent=True,
        open_world=False,
    ),
)

COURSE_TOOLS = [LIST_COURSES, GET_COURSE, LIST_CLASSROOMS, GET_CLASSROOM]
