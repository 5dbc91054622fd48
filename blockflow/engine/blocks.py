"""
Block Type Definitions.

A block type is the reusable template behind every node on the canvas:
its category, its declared input/output ports, and the default
configuration a freshly placed node starts from.
"""

from typing import Any, Dict, List, Optional, Tuple
from dataclasses import dataclass, field
from enum import Enum


class PortType(str, Enum):
    """Value types a port can carry."""
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    OBJECT = "object"
    ARRAY = "array"


class BlockCategory(str, Enum):
    """Top-level block categories."""
    UI = "ui"
    LOGIC = "logic"
    AI = "ai"
    API = "api"


@dataclass(frozen=True)
class BlockPort:
    """One input or output slot of a block type."""
    id: str
    name: str
    value_type: PortType = PortType.OBJECT
    required: bool = False
    default_value: Any = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "name": self.name,
            "type": self.value_type.value,
            "required": self.required,
        }
        if self.default_value is not None:
            data["defaultValue"] = self.default_value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BlockPort":
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            value_type=PortType(data.get("type", PortType.OBJECT.value)),
            required=bool(data.get("required", False)),
            default_value=data.get("defaultValue"),
        )


@dataclass(frozen=True)
class BlockType:
    """
    A reusable node template.

    Attributes:
        id: Unique block type identifier (e.g. "ai-chat")
        category: Top-level category used for fallback dispatch
        name: Human-readable name
        description: What the block does
        inputs: Ordered input ports
        outputs: Ordered output ports
        default_config: Configuration a node inherits unless it overrides a key
        group: Palette grouping shown in the builder (e.g. "Control Flow")
        icon: Palette icon name
    """
    id: str
    category: BlockCategory
    name: str
    description: str = ""
    inputs: Tuple[BlockPort, ...] = ()
    outputs: Tuple[BlockPort, ...] = ()
    default_config: Dict[str, Any] = field(default_factory=dict)
    group: str = ""
    icon: str = ""

    def merge_config(self, overrides: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Shallow-merge node config over the defaults; node keys win."""
        merged = dict(self.default_config)
        merged.update(overrides or {})
        return merged

    def to_dict(self) -> Dict[str, Any]:
        """Serialize in the builder's interchange shape."""
        return {
            "id": self.id,
            "type": self.category.value,
            "category": self.group,
            "name": self.name,
            "description": self.description,
            "icon": self.icon,
            "inputs": [port.to_dict() for port in self.inputs],
            "outputs": [port.to_dict() for port in self.outputs],
            "config": dict(self.default_config),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BlockType":
        """Build a BlockType from the builder's interchange shape."""
        return cls(
            id=data["id"],
            category=BlockCategory(data["type"]),
            name=data.get("name", data["id"]),
            description=data.get("description", ""),
            inputs=tuple(BlockPort.from_dict(p) for p in data.get("inputs", [])),
            outputs=tuple(BlockPort.from_dict(p) for p in data.get("outputs", [])),
            default_config=dict(data.get("config", {})),
            group=data.get("category", ""),
            icon=data.get("icon", ""),
        )


def _port(port_id: str, name: str, value_type: PortType, **kwargs) -> BlockPort:
    return BlockPort(id=port_id, name=name, value_type=value_type, **kwargs)


S, N, B, O = PortType.STRING, PortType.NUMBER, PortType.BOOLEAN, PortType.OBJECT


# ============================================================
# Built-in Block Catalog
# ============================================================

BUILTIN_BLOCK_TYPES: List[BlockType] = [
    # UI blocks
    BlockType(
        id="ui-button",
        category=BlockCategory.UI,
        name="Button",
        description="Clickable button element",
        group="Input",
        icon="Square",
        inputs=(
            _port("text", "Text", S, default_value="Click me"),
            _port("onClick", "On Click", O),
        ),
        outputs=(_port("click", "Click Event", O),),
        default_config={"variant": "default", "size": "default"},
    ),
    BlockType(
        id="ui-input",
        category=BlockCategory.UI,
        name="Text Input",
        description="Text input field",
        group="Input",
        icon="Type",
        inputs=(
            _port("placeholder", "Placeholder", S, default_value="Enter text..."),
            _port("value", "Value", S),
        ),
        outputs=(
            _port("onChange", "Change Event", O),
            _port("value", "Current Value", S),
        ),
        default_config={"type": "text"},
    ),
    BlockType(
        id="ui-text",
        category=BlockCategory.UI,
        name="Text",
        description="Display text content",
        group="Display",
        icon="FileText",
        inputs=(_port("content", "Content", S, default_value="Hello World"),),
        default_config={"variant": "p", "size": "default"},
    ),
    # Logic blocks
    BlockType(
        id="logic-condition",
        category=BlockCategory.LOGIC,
        name="Condition",
        description="Conditional logic branch",
        group="Control Flow",
        icon="GitBranch",
        inputs=(
            _port("condition", "Condition", B, required=True),
            _port("input", "Input", O),
        ),
        outputs=(_port("true", "True", O), _port("false", "False", O)),
    ),
    BlockType(
        id="logic-delay",
        category=BlockCategory.LOGIC,
        name="Delay",
        description="Wait for specified time",
        group="Control Flow",
        icon="Clock",
        inputs=(
            _port("input", "Input", O),
            _port("duration", "Duration (ms)", N, default_value=1000),
        ),
        outputs=(_port("output", "Output", O),),
    ),
    # AI blocks
    BlockType(
        id="ai-chat",
        category=BlockCategory.AI,
        name="AI Chat",
        description="Chat with AI assistant",
        group="Language",
        icon="Bot",
        inputs=(
            _port("message", "Message", S, required=True),
            _port("context", "Context", S),
        ),
        outputs=(_port("response", "Response", S), _port("error", "Error", S)),
        default_config={"model": "gpt-3.5-turbo", "temperature": 0.7, "maxTokens": 1000},
    ),
    BlockType(
        id="ai-generate",
        category=BlockCategory.AI,
        name="AI Generate",
        description="Generate content with AI",
        group="Generation",
        icon="Sparkles",
        inputs=(
            _port("prompt", "Prompt", S, required=True),
            _port("input", "Input Data", O),
        ),
        outputs=(_port("output", "Generated Content", S), _port("error", "Error", S)),
        default_config={"model": "gpt-3.5-turbo", "temperature": 0.7},
    ),
    # API blocks
    BlockType(
        id="api-request",
        category=BlockCategory.API,
        name="API Request",
        description="Make HTTP request",
        group="HTTP",
        icon="Globe",
        inputs=(
            _port("url", "URL", S, required=True),
            _port("method", "Method", S, default_value="GET"),
            _port("headers", "Headers", O),
            _port("body", "Body", O),
        ),
        outputs=(_port("response", "Response", O), _port("error", "Error", S)),
        default_config={"timeout": 5000},
    ),
    BlockType(
        id="api-webhook",
        category=BlockCategory.API,
        name="Webhook",
        description="Receive webhook data",
        group="Webhooks",
        icon="Webhook",
        outputs=(_port("data", "Webhook Data", O), _port("headers", "Headers", O)),
        default_config={"method": "POST"},
    ),
]
