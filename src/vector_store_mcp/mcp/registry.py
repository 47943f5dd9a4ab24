"""Tool registry for managing MCP tools."""

import importlib
import logging
from typing import Any, Awaitable, Callable, TYPE_CHECKING

from vector_store_mcp.config.loader import get_enabled_toolsets
from vector_store_mcp.mcp.models import BackendResult, Tool

if TYPE_CHECKING:
    from vector_store_mcp.backend.client import VectorStoreClient

logger = logging.getLogger(__name__)

# Type alias for tool handlers: validated arguments in, backend outcome out
ToolHandler = Callable[["VectorStoreClient", dict[str, Any]], Awaitable[BackendResult]]

_JSON_TYPES: dict[str, tuple[type, ...]] = {
    "string": (str,),
    "number": (int, float),
    "integer": (int,),
    "boolean": (bool,),
    "object": (dict,),
    "array": (list,),
}


class ArgumentError(ValueError):
    """Arguments do not match a tool's input schema."""


class ToolDefinition:
    """A registered tool with its metadata and handler."""

    def __init__(
        self,
        name: str,
        description: str,
        input_schema: dict[str, Any],
        handler: ToolHandler,
    ):
        self.name = name
        self.description = description
        self.input_schema = input_schema
        self.handler = handler

    def to_mcp_tool(self) -> Tool:
        """Convert to MCP Tool model for protocol responses."""
        return Tool(
            name=self.name,
            description=self.description,
            inputSchema=self.input_schema,
        )

    def validate_arguments(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """
        Check arguments against the input schema.

        Returns the arguments to pass to the handler. Optional values outside
        an enum are dropped so the backend default applies.

        Raises:
            ArgumentError: On a missing required field or a type mismatch.
        """
        properties = self.input_schema.get("properties", {})
        required = self.input_schema.get("required", [])

        missing = [key for key in required if arguments.get(key) is None]
        if missing:
            raise ArgumentError(f"Missing required argument(s): {', '.join(missing)}")

        validated: dict[str, Any] = {}
        for key, value in arguments.items():
            schema = properties.get(key)
            if schema is None or value is None:
                if value is not None:
                    validated[key] = value
                continue

            if not _matches_type(value, schema):
                raise ArgumentError(
                    f"Argument '{key}' must be of type {schema.get('type')}"
                )

            allowed = schema.get("enum")
            if allowed is not None and value not in allowed:
                if key in required:
                    raise ArgumentError(
                        f"Argument '{key}' must be one of: {', '.join(map(str, allowed))}"
                    )
                logger.debug(f"Dropping out-of-range value for '{key}' on {self.name}")
                continue

            validated[key] = value
        return validated


def _matches_type(value: Any, schema: dict[str, Any]) -> bool:
    expected = schema.get("type")
    if expected is None:
        return True
    types = _JSON_TYPES.get(expected)
    if types is None:
        return True
    # bool is an int subclass but never a JSON number
    if isinstance(value, bool) and expected != "boolean":
        return False
    if not isinstance(value, types):
        return False
    if expected == "array" and "items" in schema:
        return all(_matches_type(item, schema["items"]) for item in value)
    return True


class ToolRegistry:
    """Registry for MCP tools with plugin-style tool group loading."""

    def __init__(self) -> None:
        self._tools: dict[str, ToolDefinition] = {}
        self._toolsets: set[str] = set()

    def register(
        self,
        name: str,
        description: str,
        input_schema: dict[str, Any],
        handler: ToolHandler,
    ) -> None:
        """Register a tool with the registry."""
        if name in self._tools:
            raise ValueError(f"Tool '{name}' is already registered")
        self._tools[name] = ToolDefinition(
            name=name,
            description=description,
            input_schema=input_schema,
            handler=handler,
        )
        logger.debug(f"Registered tool: {name}")

    def get(self, name: str) -> ToolDefinition | None:
        """Get a tool by name."""
        return self._tools.get(name)

    def list_tools(self) -> list[Tool]:
        """List all registered tools as MCP Tool models, in registration order."""
        return [tool.to_mcp_tool() for tool in self._tools.values()]

    def load_toolset(self, toolset: str) -> bool:
        """
        Load a tool group module and register its tools.

        Tool groups live in vector_store_mcp/tools/<toolset>/
        and have a register_tools(registry) function.
        """
        if toolset in self._toolsets:
            logger.debug(f"Toolset '{toolset}' already loaded")
            return True

        module_path = f"vector_store_mcp.tools.{toolset}.tools"
        try:
            module = importlib.import_module(module_path)
        except ImportError as e:
            logger.warning(f"Could not import toolset '{toolset}': {e}")
            return False

        if not hasattr(module, "register_tools"):
            logger.warning(f"Toolset '{toolset}' has no register_tools function")
            return False

        module.register_tools(self)
        self._toolsets.add(toolset)
        logger.info(f"Loaded toolset: {toolset}")
        return True

    def load_toolsets(self, toolsets: list[str]) -> dict[str, bool]:
        """Load multiple tool groups, returning success status for each."""
        results = {}
        for name in toolsets:
            results[name] = self.load_toolset(name)
        return results

    @property
    def tool_count(self) -> int:
        """Return the number of registered tools."""
        return len(self._tools)

    @property
    def toolset_count(self) -> int:
        """Return the number of loaded tool groups."""
        return len(self._toolsets)


# Global registry instance
_registry: ToolRegistry | None = None


def get_registry() -> ToolRegistry:
    """Get the global tool registry, creating it if necessary."""
    global _registry
    if _registry is None:
        _registry = ToolRegistry()
    return _registry


def reset_registry() -> None:
    """Reset the global registry (useful for testing)."""
    global _registry
    _registry = None


def load_configured_registry() -> ToolRegistry:
    """Get the global registry with every enabled tool group loaded."""
    registry = get_registry()
    for toolset, loaded in registry.load_toolsets(get_enabled_toolsets()).items():
        if not loaded:
            logger.warning(f"Failed to load toolset: {toolset}")
    return registry
