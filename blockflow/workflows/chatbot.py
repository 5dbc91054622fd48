"""
Chatbot Demo Project.

The sample project shipped with the builder: a text input feeds an AI
chat block whose response is shown by a text block, with a webhook that
logs each conversation through an API request.

```
input ──→ chat ──→ reply
              └──→ log ←── webhook
```
"""

from typing import Any, Dict
import logging

from blockflow.config import settings
from blockflow.engine.graph import Edge, Graph, Node


logger = logging.getLogger(__name__)


def create_chatbot_graph() -> Graph:
    """
    Create the chatbot demo graph.

    Returns:
        Configured Graph instance
    """
    graph = Graph(graph_id=settings.DEMO_PROJECT_ID, name="Chatbot Demo")

    graph.add_node(Node(
        id="input",
        block_type_id="ui-input",
        label="User Message",
        config={"value": "Hello! What can you build?"},
        position=(80, 120),
    ))
    graph.add_node(Node(
        id="chat",
        block_type_id="ai-chat",
        label="Assistant",
        config={"temperature": 0.3},
        position=(320, 120),
    ))
    graph.add_node(Node(
        id="reply",
        block_type_id="ui-text",
        label="Reply",
        position=(560, 60),
    ))
    graph.add_node(Node(
        id="webhook",
        block_type_id="api-webhook",
        label="Conversation Hook",
        position=(320, 300),
    ))
    graph.add_node(Node(
        id="log",
        block_type_id="api-request",
        label="Log Conversation",
        config={"url": "https://example.com/conversations", "method": "POST"},
        position=(560, 240),
    ))

    graph.edges.extend([
        Edge(id="e-input-chat", source="input", target="chat", source_port="value", target_port="message"),
        Edge(id="e-chat-reply", source="chat", target="reply", source_port="response", target_port="content"),
        Edge(id="e-chat-log", source="chat", target="log", source_port="response", target_port="body"),
        Edge(id="e-webhook-log", source="webhook", target="log", source_port="data", target_port="headers"),
    ])

    return graph


def create_chatbot_project_config() -> Dict[str, Any]:
    """The demo project's builder configuration."""
    return {**create_chatbot_graph().to_dict(), "blocks": {}}


async def register_chatbot_project():
    """
    Register the chatbot demo project in storage.

    This makes the project available immediately via the API
    without needing to create it first.
    """
    from blockflow.storage.memory import project_store

    stored = await project_store.save(
        project_id=settings.DEMO_PROJECT_ID,
        name="Chatbot Demo",
        description="Text input -> AI chat -> reply, with a logging webhook",
        config=create_chatbot_project_config(),
    )

    logger.info(f"Registered chatbot demo project with ID: {stored.project_id}")
    return stored
