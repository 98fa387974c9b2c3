"""
Base Tool - Abstract base class for agent-facing tools
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class ToolCategory(Enum):
    """Tool categories"""

    AUTOMATION = "automation"


@dataclass
class ToolParameter:
    """Tool parameter definition"""

    name: str
    param_type: str  # string, int, float, bool, list, dict
    description: str
    required: bool = True
    default: Any = None
    enum: list[str] | None = None


@dataclass
class ToolMetadata:
    """Tool metadata"""

    name: str
    description: str
    category: ToolCategory
    version: str = "1.0.0"
    requires_confirmation: bool = False
    parameters: list[ToolParameter] = field(default_factory=list)
    examples: list[str] = field(default_factory=list)

    def to_json_schema(self) -> dict[str, Any]:
        """Parameter schema in the JSON-schema shape agent frameworks register."""
        type_map = {
            "string": {"type": "string"},
            "int": {"type": "integer"},
            "float": {"type": "number"},
            "bool": {"type": "boolean"},
            "list": {"type": "array", "items": {"type": "string"}},
            "dict": {"type": "object", "additionalProperties": {"type": "string"}},
        }
        properties: dict[str, Any] = {}
        for param in self.parameters:
            prop = dict(type_map.get(param.param_type, {"type": "string"}))
            prop["description"] = param.description
            if param.enum:
                prop["enum"] = list(param.enum)
            properties[param.name] = prop
        return {
            "type": "object",
            "additionalProperties": False,
            "properties": properties,
            "required": [p.name for p in self.parameters if p.required],
        }


class BaseTool(ABC):
    """
    Abstract base class for agent-facing tools.

    Subclasses define a class-level ``METADATA`` dict and implement
    ``execute(parameters)``.
    """

    METADATA: dict[str, Any] | None = None

    def __init__(self) -> None:
        self._metadata: ToolMetadata | None = None

    @property
    def metadata(self) -> ToolMetadata:
        """Get tool metadata (cached)."""
        if self._metadata is None:
            cls_meta = type(self).METADATA
            if cls_meta is None:
                raise NotImplementedError(f"{type(self).__name__} must define a METADATA class attribute")
            self._metadata = ToolMetadata(
                name=cls_meta["name"],
                description=cls_meta["description"],
                category=cls_meta["category"],
                version=cls_meta.get("version", "1.0.0"),
                requires_confirmation=cls_meta.get("requires_confirmation", False),
                parameters=[ToolParameter(**p) for p in cls_meta.get("parameters", [])],
                examples=cls_meta.get("examples", []),
            )
        return self._metadata

    @abstractmethod
    async def execute(self, parameters: dict[str, Any]) -> dict[str, Any]:
        """
        Execute the tool

        Args:
            parameters: Dictionary of parameter name -> value

        Returns:
            Dictionary with 'success' (bool) and 'result' or 'error'
        """
        pass

    _TYPE_VALIDATORS: dict[str, tuple[type, ...]] = {
        "string": (str,),
        "int": (int,),
        "float": (int, float),
        "bool": (bool,),
        "list": (list,),
        "dict": (dict,),
    }
    _TYPE_MESSAGES: dict[str, str] = {
        "string": "must be a string",
        "int": "must be an integer",
        "float": "must be a number",
        "bool": "must be a boolean",
        "list": "must be a list",
        "dict": "must be an object",
    }

    def validate_parameters(self, parameters: dict[str, Any]) -> tuple[bool, str | None]:
        """
        Validate parameters against metadata

        Returns:
            (is_valid, error_message)
        """
        known = {p.name for p in self.metadata.parameters}
        unknown = sorted(set(parameters) - known)
        if unknown:
            return False, f"Unknown parameter(s): {', '.join(unknown)}"

        for param in self.metadata.parameters:
            if param.required and param.name not in parameters:
                return False, f"Missing required parameter: {param.name}"

            if param.name in parameters and parameters[param.name] is not None:
                value = parameters[param.name]
                expected_types = self._TYPE_VALIDATORS.get(param.param_type)
                if expected_types and (
                    not isinstance(value, expected_types)
                    or (param.param_type in ("int", "float") and isinstance(value, bool))
                ):
                    msg = self._TYPE_MESSAGES.get(
                        param.param_type, f"must be of type {param.param_type}"
                    )
                    return False, f"Parameter {param.name} {msg}"
                if param.enum and value not in param.enum:
                    return False, f"Parameter {param.name} must be one of: {', '.join(param.enum)}"

        return True, None

    def _success_response(self, result: Any = None, **kwargs) -> dict[str, Any]:
        """Create success response"""
        response = {"success": True, "result": result}
        response.update(kwargs)
        return response

    def _error_response(self, error: str, **kwargs) -> dict[str, Any]:
        """Create error response"""
        response = {"success": False, "error": error}
        response.update(kwargs)
        return response
