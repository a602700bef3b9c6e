"""Tool catalog.

Each module contributes a list of tools for one area of the platform:
- courses: courses and classrooms
- enrollments: enrollment lookups
- users: user lookups
- notifications: reminder and notification sends
- search: global search
- workflows: multi-call code tools
- prompts: guided-workflow prompt templates
"""

from gateway.registry import ToolRegistry


def load_catalog(registry: ToolRegistry) -> None:
    """
    Register every catalog tool and prompt.

    Called once when the application is built.
    """
    from catalog.courses import COURSE_TOOLS
    from catalog.enrollments import ENROLLMENT_TOOLS
    from catalog.users import USER_TOOLS
    from catalog.notifications import NOTIFICATION_TOOLS
    from catalog.search import SEARCH_TOOLS
    from catalog.workflows import WORKFLOW_TOOLS
    from catalog.prompts import PROMPTS

    for tools in (
        COURSE_TOOLS,
        ENROLLMENT_TOOLS,
        USER_TOOLS,
        NOTIFICATION_TOOLS,
        SEARCH_TOOLS,
        WORKFLOW_TOOLS,
    ):
        registry.register_many(tools)

    for prompt in PROMPTS:
        registry.register_prompt(prompt)


def build_registry() -> ToolRegistry:
    """A fresh registry holding the full catalog."""
    registry = ToolRegistry()
    load_catalog(registry)
    return registry


__all__ = ["build_registry", "load_catalog"]
