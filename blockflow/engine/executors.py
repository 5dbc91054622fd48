"""
Simulated Block Executors.

Stand-ins for the real block runtimes: each one waits for a latency
typical of its category and returns a payload shaped like the real
block's output. Production deployments register real executors under
the same block type ids and keep these as category defaults.

Latency is multiplied by ``settings.SIMULATION_DELAY_SCALE``.
"""

from typing import Any, Dict
from datetime import datetime
import asyncio
import random

from blockflow.config import settings
from blockflow.engine.blocks import BlockCategory
from blockflow.engine.graph import Node


# Simulated latency per category, in milliseconds
CATEGORY_LATENCY_MS = {
    BlockCategory.UI: 500,
    BlockCategory.LOGIC: 300,
    BlockCategory.AI: 2000,
    BlockCategory.API: 1000,
}

DEFAULT_MODEL = "gpt-3.5-turbo"


async def simulate_latency(milliseconds: float) -> None:
    """Sleep for a scaled simulated latency."""
    delay = milliseconds * settings.SIMULATION_DELAY_SCALE / 1000
    if delay > 0:
        await asyncio.sleep(delay)


def _now() -> str:
    return datetime.now().isoformat()


# ============================================================
# UI blocks
# ============================================================

async def button_executor(node: Node, inputs: Dict[str, Any]) -> Dict[str, Any]:
    await simulate_latency(CATEGORY_LATENCY_MS[BlockCategory.UI])
    return {"action": "click", "timestamp": _now()}


async def input_executor(node: Node, inputs: Dict[str, Any]) -> Dict[str, Any]:
    await simulate_latency(CATEGORY_LATENCY_MS[BlockCategory.UI])
    value = node.config.get("value") or inputs.get("value") or "sample input"
    return {"value": value, "timestamp": _now()}


async def text_executor(node: Node, inputs: Dict[str, Any]) -> Dict[str, Any]:
    await simulate_latency(CATEGORY_LATENCY_MS[BlockCategory.UI])
    content = node.config.get("content", inputs.get("content"))
    return {"displayed": True, "content": content}


# ============================================================
# Logic blocks
# ============================================================

async def condition_executor(node: Node, inputs: Dict[str, Any]) -> Dict[str, Any]:
    """
    Evaluate a branch condition.

    Uses the ``condition`` input or config value when one is bound;
    otherwise the branch is picked at random, as the builder preview does.
    """
    await simulate_latency(CATEGORY_LATENCY_MS[BlockCategory.LOGIC])
    if "condition" in node.config:
        condition = bool(node.config["condition"])
    elif inputs.get("condition") is not None:
        condition = bool(inputs["condition"])
    else:
        condition = random.random() > 0.5
    return {"condition": condition, "branch": "true" if condition else "false"}


async def delay_executor(node: Node, inputs: Dict[str, Any]) -> Dict[str, Any]:
    await simulate_latency(CATEGORY_LATENCY_MS[BlockCategory.LOGIC])
    duration = node.config.get("duration") or inputs.get("duration") or 1000
    await simulate_latency(duration)
    return {"delayed": True, "duration": duration}


# ============================================================
# AI blocks
# ============================================================

async def chat_executor(node: Node, inputs: Dict[str, Any]) -> Dict[str, Any]:
    await simulate_latency(CATEGORY_LATENCY_MS[BlockCategory.AI])
    return {
        "response": (
            "This is a simulated AI response. In production, this would "
            "connect to the actual AI service."
        ),
        "model": node.config.get("model") or DEFAULT_MODEL,
        "tokens": 150,
    }


async def generate_executor(node: Node, inputs: Dict[str, Any]) -> Dict[str, Any]:
    await simulate_latency(CATEGORY_LATENCY_MS[BlockCategory.AI])
    return {
        "generated": "This is simulated generated content.",
        "model": node.config.get("model") or DEFAULT_MODEL,
        "tokens": 200,
    }


# ============================================================
# API blocks
# ============================================================

async def request_executor(node: Node, inputs: Dict[str, Any]) -> Dict[str, Any]:
    await simulate_latency(CATEGORY_LATENCY_MS[BlockCategory.API])
    return {
        "status": 200,
        "data": {"message": "Simulated API response", "timestamp": _now()},
        "headers": {"content-type": "application/json"},
    }


async def webhook_executor(node: Node, inputs: Dict[str, Any]) -> Dict[str, Any]:
    await simulate_latency(CATEGORY_LATENCY_MS[BlockCategory.API])
    return {"received": True, "data": {"event": "webhook", "payload": "sample data"}}


def _category_default(category: BlockCategory):
    async def execute(node: Node, inputs: Dict[str, Any]) -> Dict[str, Any]:
        await simulate_latency(CATEGORY_LATENCY_MS[category])
        return {"success": True}

    execute.__name__ = f"{category.value}_default_executor"
    return execute


SIMULATED_EXECUTORS = {
    "ui-button": button_executor,
    "ui-input": input_executor,
    "ui-text": text_executor,
    "logic-condition": condition_executor,
    "logic-delay": delay_executor,
    "ai-chat": chat_executor,
    "ai-generate": generate_executor,
    "api-request": request_executor,
    "api-webhook": webhook_executor,
}


def register_simulated_executors(registry) -> None:
    """Register the simulated executors and category defaults on a registry."""
    for block_type_id, executor in SIMULATED_EXECUTORS.items():
        registry.add_executor(block_type_id, executor)
    for category in BlockCategory:
        registry.add_category_executor(category, _category_default(category))
