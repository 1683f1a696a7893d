"""Conversation data model shared by the agent loop and the model client."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

SCREENSHOT_MIME_TYPE = "image/jpeg"


class Role(str, Enum):
    USER = "user"
    MODEL = "model"


@dataclass(frozen=True)
class SafetyDecision:
    """Safety verdict the model attaches to a risky function call."""
    decision: str
    explanation: str = ""

    @property
    def requires_confirmation(self) -> bool:
        return self.decision == "require_confirmation"

    @classmethod
    def from_raw(cls, raw: Any) -> Optional[SafetyDecision]:
        if not isinstance(raw, dict):
            return None
        decision = raw.get("decision")
        if not decision:
            return None
        return cls(decision=str(decision), explanation=str(raw.get("explanation") or ""))

    def to_dict(self) -> Dict[str, str]:
        return {"decision": self.decision, "explanation": self.explanation}


@dataclass(frozen=True)
class FunctionCall:
    """
    A single action request emitted by the model.

    The model nests its safety verdict inside the argument bag as
    ``safety_decision``; from_model() lifts it into its own field so the
    executor only ever sees action arguments in ``args``.
    """
    name: str
    args: Dict[str, Any] = field(default_factory=dict)
    safety_decision: Optional[SafetyDecision] = None
    id: Optional[str] = None

    @classmethod
    def from_model(cls, name: str, args: Optional[Dict[str, Any]] = None, call_id: Optional[str] = None) -> FunctionCall:
        action_args = dict(args or {})
        safety = SafetyDecision.from_raw(action_args.pop("safety_decision", None))
        return cls(name=name or "", args=action_args, safety_decision=safety, id=call_id)


# ==================== Parts ====================
# ``raw`` keeps the SDK object a model-side part was parsed from, so the turn
# can be replayed to the API unchanged (call ids, thought signatures).

@dataclass(frozen=True)
class TextPart:
    text: str
    raw: Any = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class ImagePart:
    data: bytes
    mime_type: str = SCREENSHOT_MIME_TYPE


@dataclass(frozen=True)
class FunctionCallPart:
    call: FunctionCall
    raw: Any = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class FunctionResponsePart:
    name: str
    response: Dict[str, Any]
    image: Optional[ImagePart] = None
    call_id: Optional[str] = None


Part = Union[TextPart, ImagePart, FunctionCallPart, FunctionResponsePart]


@dataclass(frozen=True)
class ConversationTurn:
    """One immutable turn of the conversation."""
    role: Role
    parts: Tuple[Part, ...]

    @classmethod
    def user(cls, parts: List[Part]) -> ConversationTurn:
        return cls(role=Role.USER, parts=tuple(parts))

    @classmethod
    def model(cls, parts: List[Part]) -> ConversationTurn:
        return cls(role=Role.MODEL, parts=tuple(parts))

    @property
    def function_calls(self) -> List[FunctionCall]:
        return [part.call for part in self.parts if isinstance(part, FunctionCallPart)]

    @property
    def texts(self) -> List[str]:
        return [part.text for part in self.parts if isinstance(part, TextPart) and part.text]

    @property
    def function_responses(self) -> List[FunctionResponsePart]:
        return [part for part in self.parts if isinstance(part, FunctionResponsePart)]


@dataclass
class ModelResponse:
    """
    What the model client hands back for one request.

    ``parts`` is None when the API returned no candidate content at all.
    """
    parts: Optional[List[Part]] = None
    block_reason: Optional[str] = None
    block_reason_message: Optional[str] = None

    @property
    def is_blocked(self) -> bool:
        return bool(self.block_reason)

    @property
    def is_empty(self) -> bool:
        return not self.parts


__all__ = [
    "Role",
    "SafetyDecision",
    "FunctionCall",
    "TextPart",
    "ImagePart",
    "FunctionCallPart",
    "FunctionResponsePart",
    "Part",
    "ConversationTurn",
    "ModelResponse",
    "SCREENSHOT_MIME_TYPE",
]
