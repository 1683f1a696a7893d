"""Model client for Gemini Computer Use through the google-genai SDK.

The helpers in this module provide a consistent way to:
    * declare the browser-use capability on every request
    * convert the agent's conversation turns into SDK ``Content`` objects
    * turn an SDK response back into local parts, or a block/empty signal
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from bot_config import ModelConfig
from error_handling import ConfigurationError, LLMError
from models.conversation import (
    ConversationTurn,
    FunctionCall,
    FunctionCallPart,
    FunctionResponsePart,
    ImagePart,
    ModelResponse,
    Part,
    TextPart,
)

__all__ = [
    "ModelClient",
    "GeminiModelClient",
    "build_generate_config",
    "to_genai_part",
    "to_genai_content",
    "parse_response",
]


class ModelClient(ABC):
    """Anything that can produce the next model turn for a conversation."""

    @abstractmethod
    def generate(self, conversation: Sequence[ConversationTurn]) -> ModelResponse:
        """Send the full conversation and return the model's next turn."""


# ---------------------------------------------------------------------------
# Request building
# ---------------------------------------------------------------------------


def build_generate_config(model_config: ModelConfig) -> types.GenerateContentConfig:
    """Request config declaring the browser Computer Use tool."""
    return types.GenerateContentConfig(
        system_instruction=model_config.system_instruction or None,
        tools=[
            types.Tool(
                computer_use=types.ComputerUse(
                    environment=types.Environment.ENVIRONMENT_BROWSER,
                    excluded_predefined_functions=list(model_config.excluded_predefined_functions),
                )
            )
        ],
    )


def to_genai_part(part: Part) -> types.Part:
    """Convert one local part into its SDK equivalent."""
    if isinstance(part, (TextPart, FunctionCallPart)) and part.raw is not None:
        return part.raw

    if isinstance(part, TextPart):
        return types.Part(text=part.text)

    if isinstance(part, ImagePart):
        return types.Part.from_bytes(data=part.data, mime_type=part.mime_type)

    if isinstance(part, FunctionCallPart):
        args = dict(part.call.args)
        if part.call.safety_decision is not None:
            args["safety_decision"] = part.call.safety_decision.to_dict()
        return types.Part(
            function_call=types.FunctionCall(name=part.call.name, args=args, id=part.call.id)
        )

    if isinstance(part, FunctionResponsePart):
        attachments = []
        if part.image is not None:
            attachments.append(
                types.FunctionResponsePart(
                    inline_data=types.FunctionResponseBlob(
                        mime_type=part.image.mime_type,
                        data=part.image.data,
                    )
                )
            )
        return types.Part(
            function_response=types.FunctionResponse(
                id=part.call_id,
                name=part.name,
                response=part.response,
                parts=attachments or None,
            )
        )

    raise TypeError(f"Unsupported conversation part: {type(part).__name__}")


def to_genai_content(turn: ConversationTurn) -> types.Content:
    return types.Content(role=turn.role.value, parts=[to_genai_part(part) for part in turn.parts])


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------


def _enum_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(getattr(value, "value", value))


def parse_response(response: types.GenerateContentResponse) -> ModelResponse:
    """
    Convert an SDK response into a ModelResponse.

    Only the first candidate is used. Parts that are neither text nor function
    calls (thought-only parts, for example) are dropped.
    """
    feedback = getattr(response, "prompt_feedback", None)
    block_reason = _enum_text(getattr(feedback, "block_reason", None)) if feedback else None
    if block_reason:
        return ModelResponse(
            parts=None,
            block_reason=block_reason,
            block_reason_message=getattr(feedback, "block_reason_message", None),
        )

    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return ModelResponse(parts=None)

    content = getattr(candidates[0], "content", None)
    raw_parts = getattr(content, "parts", None) if content else None
    if not raw_parts:
        return ModelResponse(parts=None)

    parts: List[Part] = []
    for raw in raw_parts:
        function_call = getattr(raw, "function_call", None)
        if function_call is not None:
            call = FunctionCall.from_model(
                name=function_call.name,
                args=dict(function_call.args or {}),
                call_id=getattr(function_call, "id", None),
            )
            parts.append(FunctionCallPart(call=call, raw=raw))
        elif getattr(raw, "text", None):
            parts.append(TextPart(text=raw.text, raw=raw))

    return ModelResponse(parts=parts)


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class GeminiModelClient(ModelClient):
    """
    Gemini Computer Use client.

    Example:
        >>> client = GeminiModelClient(ModelConfig(api_key="..."))
        >>> response = client.generate(conversation)
    """

    def __init__(self, model_config: ModelConfig, client: Optional[genai.Client] = None):
        if client is None and not model_config.api_key:
            raise ConfigurationError(
                "GOOGLE_API_KEY environment variable is not set.",
                metadata={"model": model_config.model_name},
            )
        self.model_config = model_config
        self._client = client or genai.Client(api_key=model_config.api_key)
        self._generate_config = build_generate_config(model_config)

    @property
    def model_name(self) -> str:
        return self.model_config.model_name

    def generate(self, conversation: Sequence[ConversationTurn]) -> ModelResponse:
        contents = [to_genai_content(turn) for turn in conversation]
        try:
            response = self._client.models.generate_content(
                model=self.model_config.model_name,
                contents=contents,
                config=self._generate_config,
            )
        except genai_errors.APIError as exc:
            raise LLMError(f"[Gemini] Request failed: {exc}") from exc
        return parse_response(response)
