"""Guided-workflow prompts.

Templates are rendered with ``str.format``; optional arguments the client
omits render as empty strings.
"""

from shared.models import PromptArgument, PromptDefinition

LEARNER_PROGRESS = PromptDefinition(
    name="learner-progress",
    description="Guided workflow for checking a learner's course progress and enrollment status.",
    arguments=[
        PromptArgument(
            name="user_id",
            description="The user ID to check progress for.",
            required=True,
        ),
    ],
    template="""Check learner progress for user ID {user_id} on the learning platform.

Steps:
1. Use the "get_learner_dashboard" tool with user_id="{user_id}" to retrieve the profile and all enrollments.
2. For any enrollment of interest, use the "get-enrollment-details" tool to get completion and score details.
3. Summarize the results in a table with columns: Course Name, Course ID, Status, Completion %, Score, and Enrollment Date.

Present the report in a clear, structured format.""",
)

TEAM_TRAINING_STATUS = PromptDefinition(
    name="team-training-status",
    description=(
        "Guided workflow for managers to check team training completion status. "
        "Lists team members and their enrollment progress."
    ),
    arguments=[
        PromptArgument(
            name="training_name",
            description="Training or course name to filter by. If omitted, all trainings are included.",
        ),
        PromptArgument(
            name="team_member",
            description="Team member name or email to filter by. If omitted, all team members are included.",
        ),
    ],
    template="""Check team training completion status on the learning platform.

Team member filter: "{team_member}" (empty means all team members)
Training filter: "{training_name}" (empty means all assigned trainings)

Steps:
1. Use the "list-users" tool to find team members, searching for the team member filter when one is given.
2. For each user found, use the "list-enrollments" tool with their user_id to retrieve their enrollments.
3. Use the "list-all-courses" tool to resolve course names, and to match the training filter when one is given.
4. Summarize the results in a table with columns: Team Member, Course, Status, Completion %, Due Date.

Present the report in a clear, structured format. Highlight any overdue or at-risk enrollments.""",
)

COURSE_ENROLLMENT_REPORT = PromptDefinition(
    name="course-enrollment-report",
    description=(
        "Guided workflow for generating a course enrollment report. "
        "Lists courses and retrieves enrollment details."
    ),
    arguments=[
        PromptArgument(
            name="course_name",
            description="Course name to filter by. If omitted, all courses are included.",
        ),
    ],
    template="""Generate a course enrollment report on the learning platform.

Course filter: "{course_name}" (empty means all courses)

Steps:
1. Use the "list-all-courses" tool, passing the course filter as search_text when one is given.
2. For each course, use the "list-enrollments" tool with its course_id.
3. Summarize enrollments per course in a table with columns: Course, Enrolled, In Progress, Completed, Completion Rate.

Present the report in a clear, structured format.""",
)

COURSE_RECOMMENDATIONS = PromptDefinition(
    name="course-recommendations",
    description=(
        "Personalized course recommendations based on user profile and learning history."
    ),
    arguments=[
        PromptArgument(
            name="user_name",
            description="Employee name or email to look up. If omitted, ask the user to identify themselves.",
        ),
        PromptArgument(
            name="interest_area",
            description="Topic or skill area of interest (e.g., leadership, compliance).",
        ),
    ],
    template="""Provide personalized course recommendations for an employee on the learning platform.

Employee: "{user_name}" (if empty, ask the user to identify themselves)
Interest area: "{interest_area}" (if empty, base recommendations on role and learning history)

Steps:
1. Use "list-users" to find the employee, then "get-user" to retrieve their profile (role, department, branch).
2. Use "list-enrollments" with the user's user_id to retrieve their completed and in-progress courses.
3. Use "list-all-courses", passing the interest area as search_text when one is given, to browse the catalog.
4. Compare what the employee has completed with what is available and relevant to their role and interests.
5. Present the top recommendations in a table with columns: Course Name, Category, Why Recommended, Relevance (High/Medium/Low).

Prioritize courses the employee has not yet enrolled in, and highlight any mandatory or compliance courses they may be missing.""",
)

PROMPTS = [
    LEARNER_PROGRESS,
    TEAM_TRAINING_STATUS,
    COURSE_ENROLLMENT_REPORT,
    COURSE_RECOMMENDATIONS,
]
