"""
Data models for the browser task agent.
"""
from .conversation import (
    Role,
    SafetyDecision,
    FunctionCall,
    TextPart,
    ImagePart,
    FunctionCallPart,
    FunctionResponsePart,
    ConversationTurn,
    ModelResponse,
)
from .actions import ActionName, BrowserAction, parse_action

__all__ = [
    "Role",
    "SafetyDecision",
    "FunctionCall",
    "TextPart",
    "ImagePart",
    "FunctionCallPart",
    "FunctionResponsePart",
    "ConversationTurn",
    "ModelResponse",
    "ActionName",
    "BrowserAction",
    "parse_action",
]
