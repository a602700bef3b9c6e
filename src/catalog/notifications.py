"""Notification tools.

Both tools trigger real messages to learners and are not read-only.
"""

from shared.models import DeclarativeTool, ToolAnnotations

SEND_TRAINING_REMINDER = DeclarativeTool(
    name="send-training-reminder",
    description="""Purpose: Sends a custom training reminder email to a specific user.

Returns: Confirmation that the email was sent.

Usage Guidance:
  - Requires subject and message (HTML is supported in the message body).
  - Use list-users to find the user's ID before sending.
  - This triggers an actual email; use with care.""",
    input_schema={
        "type": "object",
        "properties": {
            "requestBody": {
                "type": "object",
                "description": "Email details",
                "properties": {
                    "id_user": {
                        "type": "integer",
                        "description": "User ID to send the email to"
                    },
                    "subject": {
                        "type": "string",
                        "minLength": 1,
                        "description": "Email subject line"
                    },
                    "message": {
                        "type": "string",
                        "minLength": 1,
                        "description": "Email body (HTML allowed)"
                    },
                },
                "required": ["id_user", "subject", "message"],
            },
        },
        "required": ["requestBody"],
    },
    method="POST",
    path_template="manage/v1/user/send_mail",
    request_body_content_type="application/json",
    annotations=ToolAnnotations(
        title="Send Training Reminder",
        read_only=False,
        destructive=False,
        idempotent=False,
        open_world=True,
    ),
)

SEND_LEARNING_PLAN_NOTIFICATION = DeclarativeTool(
    name="send-learning-plan-notification",
    description="""Purpose: Triggers the learning plan notification for a user.

Usage Guidance:
  - Use to nudge a learner about a learning plan they are assigned to.
  - Sends a real notification through the platform's notification engine.""",
    input_schema={
        "type": "object",
        "properties": {
            "requestBody": {
                "type": "object",
                "description": "Notification details",
                "properties": {
                    "user_id": {
                        "type": "integer",
                        "description": "User ID to notify"
                    },
                    "learning_plan_id": {
                        "type": "integer",
                        "description": "Learning plan ID"
                    },
                },
                "required": ["user_id", "learning_plan_id"],
            },
        },
        "required": ["requestBody"],
    },
    method="POST",
    path_template="manage/v1/notifications/external_notification",
    request_body_content_type="application/json",
    annotations=ToolAnnotations(
        title="Send Learning Plan Notification",
        read_only=False,
        destructive=False,
        idempotent=False,
        open_world=True,
    ),
)

NOTIFICATION_TOOLS = [SEND_TRAINING_REMINDER, SEND_LEARNING_PLAN_NOTIFICATION]
