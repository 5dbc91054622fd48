"""
Workflows package - Sample projects.
"""

from blockflow.workflows.chatbot import (
    create_chatbot_graph,
    create_chatbot_project_config,
    register_chatbot_project,
)

__all__ = [
    "create_chatbot_graph",
    "create_chatbot_project_config",
    "register_chatbot_project",
]
