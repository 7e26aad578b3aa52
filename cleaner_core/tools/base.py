"""
TOOL_BASE
=========

Base classes and registry for the cleanerCore operation system.

Operations (tools) are the named capabilities the service exposes: scanners,
cleaners, and the scheduler's own task-management calls. Each tool defines its
schema (so a caller knows how to invoke it) and an async execute method.

Architecture
------------
::

    BaseTool (abstract)
    ├── definition property → ToolDefinition (name, description, parameters)
    └── async execute(**kwargs) → ToolResult (success, output, error, metadata)

    FunctionTool(BaseTool)    — wraps a plain handler(params) callable

    ToolRegistry
    ├── register(tool)          — Add tool, duplicate names rejected
    ├── invoke(name, params)    — Internal call: raises, returns result verbatim
    ├── execute(name, params)   — Caller-facing call: never raises
    ├── list_all()              — (name, description) snapshot for matching
    └── get_schemas(format)     — OpenAI / Anthropic function-calling format

Two call paths
--------------
- ``invoke`` is what the scheduler uses. Unknown names raise
  ``ToolNotFoundError`` and handler exceptions propagate, so the caller can
  record them as execution failures.
- ``execute`` is what a transport layer uses. All exceptions are caught and
  returned as ``ToolResult(success=False)``, and output over
  ``max_output_size`` is truncated with a notice.

Usage::

    registry = ToolRegistry()
    registry.register(CleanTempFilesTool())
    registry.register_function(
        "Cleaner_EmptyTrash", "Empty the user's trash", empty_trash
    )

    result = await registry.execute("Cleaner_CleanTempFiles", {"dryRun": True})
"""

import asyncio
import inspect
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


# ============================================================================
# ERRORS
# ============================================================================

class ToolNotFoundError(LookupError):
    """No tool registered under the requested name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Tool not found: {name}")


class DuplicateToolError(ValueError):
    """A tool with the same name is already registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Tool already registered: {name}")


# ============================================================================
# TOOL DEFINITION STRUCTURES
# ============================================================================

@dataclass
class ToolParameter:
    """Definition of a tool parameter."""
    name: str
    type: str  # "string", "integer", "boolean", "array", "object"
    description: str
    required: bool = True
    enum: Optional[List[str]] = None
    default: Optional[Any] = None
    minimum: Optional[int] = None
    maximum: Optional[int] = None

    def to_schema(self) -> Dict:
        """Convert to JSON Schema format."""
        schema = {
            "type": self.type,
            "description": self.description,
        }
        if self.enum:
            schema["enum"] = self.enum
        if self.default is not None:
            schema["default"] = self.default
        if self.minimum is not None:
            schema["minimum"] = self.minimum
        if self.maximum is not None:
            schema["maximum"] = self.maximum
        if self.type == "object":
            schema["additionalProperties"] = True
        return schema


@dataclass
class ToolDefinition:
    """Complete tool definition exposed to callers."""
    name: str
    description: str
    parameters: List[ToolParameter] = field(default_factory=list)

    def _input_schema(self) -> Dict:
        properties = {}
        required = []
        for param in self.parameters:
            properties[param.name] = param.to_schema()
            if param.required:
                required.append(param.name)
        return {
            "type": "object",
            "properties": properties,
            "required": required
        }

    def to_schema(self) -> Dict:
        """OpenAI function-calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self._input_schema()
            }
        }

    def to_anthropic_schema(self) -> Dict:
        """Anthropic tool format."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self._input_schema()
        }


# ============================================================================
# TOOL RESULT
# ============================================================================

@dataclass
class ToolResult:
    """Result of tool execution."""
    success: bool
    output: str
    error: Optional[str] = None
    metadata: Optional[Dict] = None

    def to_dict(self) -> Dict:
        result = {
            "success": self.success,
            "output": self.output,
        }
        if self.error:
            result["error"] = self.error
        if self.metadata:
            result["metadata"] = self.metadata
        return result

    def __str__(self) -> str:
        if self.success:
            return self.output
        return f"[ERROR] {self.error or 'Unknown error'}"


def coerce_result(value: Any) -> ToolResult:
    """
    Normalize a handler's return value into a ToolResult.

    ToolResult passes through; str becomes the output; None becomes an empty
    success; anything else is rendered as JSON text.
    """
    if isinstance(value, ToolResult):
        return value
    if value is None:
        return ToolResult(success=True, output="")
    if isinstance(value, str):
        return ToolResult(success=True, output=value)
    return ToolResult(success=True, output=json.dumps(value, indent=2, default=str))


# ============================================================================
# BASE TOOL CLASS
# ============================================================================

class BaseTool(ABC):
    """
    Base class for all tools.

    Subclasses must implement:
    - definition property: Returns ToolDefinition with schema
    - execute coroutine: Performs the actual work
    """

    @property
    @abstractmethod
    def definition(self) -> ToolDefinition:
        """Return the tool's definition."""
        pass

    @abstractmethod
    async def execute(self, **kwargs) -> ToolResult:
        """
        Execute the tool with given parameters.

        Args:
            **kwargs: Parameters as defined in the tool's schema

        Returns:
            ToolResult with success status and output
        """
        pass

    @property
    def name(self) -> str:
        """Get tool name from definition."""
        return self.definition.name

    @property
    def description(self) -> str:
        return self.definition.description

    def get_schema(self) -> Dict:
        """Get the tool schema in OpenAI format."""
        return self.definition.to_schema()

    def get_anthropic_schema(self) -> Dict:
        """Get the tool schema in Anthropic format."""
        return self.definition.to_anthropic_schema()


class FunctionTool(BaseTool):
    """
    Tool backed by a plain callable taking the parameter bag.

    Coroutine functions are awaited directly. Blocking functions run in a
    worker thread via ``asyncio.to_thread`` so a slow scan never stalls the
    event loop.
    """

    def __init__(
        self,
        name: str,
        description: str,
        handler: Callable[[Dict[str, Any]], Any],
        parameters: Optional[List[ToolParameter]] = None
    ):
        self._definition = ToolDefinition(
            name=name,
            description=description,
            parameters=list(parameters or [])
        )
        self.handler = handler

    @property
    def definition(self) -> ToolDefinition:
        return self._definition

    async def execute(self, **kwargs) -> ToolResult:
        if inspect.iscoroutinefunction(self.handler):
            value = await self.handler(kwargs)
        else:
            value = await asyncio.to_thread(self.handler, kwargs)
            if inspect.isawaitable(value):
                value = await value
        return coerce_result(value)


# ============================================================================
# TOOL REGISTRY
# ============================================================================

class ToolRegistry:
    """
    Registry for managing and executing tools.

    Handles:
    - Tool registration and discovery (names are unique)
    - Schema generation for callers
    - Tool invocation by name
    - Output size limiting on the caller-facing path

    No timeouts are imposed: a hung operation occupies only the coroutine
    that awaits it.
    """

    MAX_OUTPUT_SIZE = 100000  # ~100KB

    def __init__(self, max_output_size: int = MAX_OUTPUT_SIZE):
        self._tools: Dict[str, BaseTool] = {}
        self.max_output_size = max_output_size

    def register(self, tool: BaseTool, replace: bool = False) -> None:
        """
        Register a tool.

        Raises:
            DuplicateToolError: name already registered and ``replace`` is False
        """
        name = tool.name
        if name in self._tools:
            if not replace:
                raise DuplicateToolError(name)
            logger.warning(f"Replacing registered tool: {name}")
        self._tools[name] = tool
        logger.debug(f"Tool registered: {name}")

    def register_function(
        self,
        name: str,
        description: str,
        handler: Callable[[Dict[str, Any]], Any],
        parameters: Optional[List[ToolParameter]] = None,
        replace: bool = False
    ) -> FunctionTool:
        """Wrap ``handler`` in a FunctionTool and register it."""
        tool = FunctionTool(name, description, handler, parameters)
        self.register(tool, replace=replace)
        return tool

    def get(self, name: str) -> Optional[BaseTool]:
        """Get a tool by name."""
        return self._tools.get(name)

    def has(self, name: str) -> bool:
        """Check if a tool is registered."""
        return name in self._tools

    def list_tools(self) -> List[str]:
        """List all registered tool names."""
        return list(self._tools.keys())

    def list_all(self) -> List[Tuple[str, str]]:
        """Snapshot of (name, description) pairs, used for fuzzy matching."""
        return [(name, tool.description) for name, tool in self._tools.items()]

    def __len__(self) -> int:
        return len(self._tools)

    def get_schemas(self, format: str = "openai") -> List[Dict]:
        """
        Get all tool schemas.

        Args:
            format: "openai" or "anthropic"

        Returns:
            List of tool schemas
        """
        schemas = []
        for tool in self._tools.values():
            if format == "anthropic":
                schemas.append(tool.get_anthropic_schema())
            else:
                schemas.append(tool.get_schema())
        return schemas

    async def invoke(self, tool_name: str, parameters: Optional[Dict] = None) -> ToolResult:
        """
        Invoke a tool and return its result verbatim.

        Raises:
            ToolNotFoundError: no tool named ``tool_name``
            Exception: whatever the handler raises
        """
        tool = self._tools.get(tool_name)
        if tool is None:
            raise ToolNotFoundError(tool_name)
        result = await tool.execute(**(parameters or {}))
        return coerce_result(result)

    async def execute(self, tool_name: str, parameters: Optional[Dict] = None) -> ToolResult:
        """
        Execute a tool by name, converting every failure into a ToolResult.

        Args:
            tool_name: Name of the tool to execute
            parameters: Parameters to pass to the tool

        Returns:
            ToolResult from tool execution
        """
        try:
            result = await self.invoke(tool_name, parameters)
        except ToolNotFoundError as e:
            return ToolResult(success=False, output="", error=str(e))
        except TypeError as e:
            # Parameter mismatch
            return ToolResult(
                success=False,
                output="",
                error=f"Invalid parameters for {tool_name}: {e}"
            )
        except Exception as e:
            logger.error(f"Tool '{tool_name}' failed: {e}")
            return ToolResult(
                success=False,
                output="",
                error=f"Tool execution failed: {e}"
            )

        if result.output and len(result.output) > self.max_output_size:
            result = ToolResult(
                success=result.success,
                output=result.output[:self.max_output_size] + f"\n\n[TRUNCATED - output exceeded {self.max_output_size} characters]",
                error=result.error,
                metadata={
                    **(result.metadata or {}),
                    "truncated": True,
                    "original_size": len(result.output)
                }
            )

        return result

    def get_tool_summaries(self) -> List[Dict[str, str]]:
        """Return [{name, description}] for all tools, without schemas."""
        return [
            {"name": name, "description": description}
            for name, description in self.list_all()
        ]
