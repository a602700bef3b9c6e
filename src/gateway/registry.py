"""Tool Registry for the gateway.

Manages registration, discovery, and lookup of tools. Entries are either
declarative tools (executed generically as one HTTP call) or code tools
(which supply their own process step).
"""

from typing import Any, Iterable, Optional

from shared.logging import get_logger
from shared.models import PromptDefinition, ToolEntry
from shared.schema import validate_schema

logger = get_logger(__name__)


class ToolRegistry:
    """
    Central registry for MCP tools and prompts.

    Responsibilities:
    - Register tools from the catalog
    - Look up tools by name
    - Enumerate tools for tools/list
    - Validate tool arguments
    """

    def __init__(self) -> None:
        self._tools: dict[str, ToolEntry] = {}
        self._prompts: dict[str, PromptDefinition] = {}

    def register(self, tool: ToolEntry) -> None:
        """
        Register a tool in the registry.

        Args:
            tool: Declarative or code tool to register

        Raises:
            ValueError: If tool name is already registered
        """
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' is already registered")

        self._tools[tool.name] = tool

        logger.debug("Tool registered", tool=tool.name, kind=tool.kind)

    def register_many(self, tools: Iterable[ToolEntry]) -> None:
        """Register multiple tools at once."""
        for tool in tools:
            self.register(tool)

    def get(self, tool_name: str) -> Optional[ToolEntry]:
        """
        Get a tool by name.

        Args:
            tool_name: Unique tool name

        Returns:
            The tool entry if found, None otherwise
        """
        return self._tools.get(tool_name)

    def list_tools(self) -> list[ToolEntry]:
        """List all registered tools in registration order."""
        return list(self._tools.values())

    def get_tools_for_protocol(self) -> list[dict[str, Any]]:
        """Tool descriptions in MCP tools/list format."""
        return [tool.to_protocol() for tool in self._tools.values()]

    def validate_input(
        self,
        tool_name: str,
        arguments: dict[str, Any]
    ) -> tuple[bool, list[str]]:
        """
        Validate arguments against a tool's input schema.

        Args:
            tool_name: Unique tool name
            arguments: Arguments to validate

        Returns:
            Tuple of (is_valid, list of error messages)
        """
        tool = self.get(tool_name)
        if not tool:
            return False, [f"Tool '{tool_name}' not found"]

        if not tool.input_schema:
            return True, []

        return validate_schema(arguments, tool.input_schema)

    def register_prompt(self, prompt: PromptDefinition) -> None:
        """Register a prompt template."""
        if prompt.name in self._prompts:
            raise ValueError(f"Prompt '{prompt.name}' is already registered")
        self._prompts[prompt.name] = prompt

    def get_prompt(self, name: str) -> Optional[PromptDefinition]:
        return self._prompts.get(name)

    def list_prompts(self) -> list[PromptDefinition]:
        return list(self._prompts.values())

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, tool_name: str) -> bool:
        return tool_name in self._tools
