"""Browser action vocabulary and per-action argument schemas."""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Type

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from error_handling import InvalidArgumentError
from models.conversation import FunctionCall

DEFAULT_SCROLL_MAGNITUDE = 800.0
SCROLL_DIRECTIONS = ("up", "down", "left", "right")

_WAIT_N_SECONDS = re.compile(r"^wait_(\d+)_seconds$", re.IGNORECASE)


class ActionName(str, Enum):
    """Closed set of actions the executor understands."""
    OPEN_WEB_BROWSER = "open_web_browser"
    NAVIGATE = "navigate"
    SEARCH = "search"
    CLICK_AT = "click_at"
    HOVER_AT = "hover_at"
    TYPE_TEXT_AT = "type_text_at"
    KEY_COMBINATION = "key_combination"
    SCROLL_DOCUMENT = "scroll_document"
    SCROLL_AT = "scroll_at"
    DRAG_AND_DROP = "drag_and_drop"
    GO_BACK = "go_back"
    GO_FORWARD = "go_forward"
    WAIT = "wait"
    WAIT_SECONDS = "wait_seconds"
    WAIT_FOR_SECONDS = "wait_for_seconds"
    WAIT_N_SECONDS = "wait_<n>_seconds"
    UNSUPPORTED = "unsupported"


# ==================== Argument schemas ====================

class ActionArgs(BaseModel):
    """Base schema: unknown keys from the model are ignored."""
    model_config = ConfigDict(extra="ignore", frozen=True)


class NoArgs(ActionArgs):
    pass


class NavigateArgs(ActionArgs):
    url: str = Field(min_length=1)

    @field_validator("url", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class PointArgs(ActionArgs):
    # Coordinates stay untyped here; utils.coordinates owns their coercion
    # so bad values surface as InvalidCoordinateError.
    x: Any = Field(...)
    y: Any = Field(...)


class ClickAtArgs(PointArgs):
    button: str = "left"
    click_count: int = Field(default=1, ge=1)

    @field_validator("button", mode="before")
    @classmethod
    def _default_button(cls, value: Any) -> Any:
        return value or "left"

    @field_validator("button")
    @classmethod
    def _known_button(cls, value: str) -> str:
        value = value.lower()
        if value not in ("left", "right", "middle"):
            raise ValueError(f"unknown mouse button '{value}'")
        return value

    @field_validator("click_count", mode="before")
    @classmethod
    def _default_click_count(cls, value: Any) -> Any:
        return 1 if value in (None, "", 0) else value


class HoverAtArgs(PointArgs):
    pass


class TypeTextAtArgs(PointArgs):
    text: str = ""
    press_enter: bool = True
    clear_before_typing: bool = True

    @field_validator("text", mode="before")
    @classmethod
    def _text_or_empty(cls, value: Any) -> Any:
        return value if isinstance(value, str) else ""

    @field_validator("press_enter", "clear_before_typing", mode="before")
    @classmethod
    def _default_true(cls, value: Any) -> Any:
        return True if value is None else value


class KeyCombinationArgs(ActionArgs):
    keys: str = Field(min_length=1)

    @field_validator("keys", mode="before")
    @classmethod
    def _join_list(cls, value: Any) -> Any:
        # Some responses send ["Control", "c"] instead of "Control+c"
        if isinstance(value, (list, tuple)):
            return "+".join(str(key) for key in value)
        return value


class ScrollDocumentArgs(ActionArgs):
    direction: str = "down"
    magnitude: float = DEFAULT_SCROLL_MAGNITUDE

    @field_validator("direction", mode="before")
    @classmethod
    def _normalize_direction(cls, value: Any) -> Any:
        return str(value or "down").lower()

    @field_validator("direction")
    @classmethod
    def _known_direction(cls, value: str) -> str:
        if value not in SCROLL_DIRECTIONS:
            raise ValueError(f"Unsupported scroll direction: {value}")
        return value

    @field_validator("magnitude", mode="before")
    @classmethod
    def _default_magnitude(cls, value: Any) -> Any:
        return DEFAULT_SCROLL_MAGNITUDE if value in (None, "", 0) else value

    def deltas(self) -> tuple[float, float]:
        """Signed (dx, dy) wheel deltas for this scroll."""
        amount = abs(self.magnitude)
        return {
            "up": (0.0, -amount),
            "down": (0.0, amount),
            "left": (-amount, 0.0),
            "right": (amount, 0.0),
        }[self.direction]


class ScrollAtArgs(PointArgs, ScrollDocumentArgs):
    pass


class DragAndDropArgs(PointArgs):
    destination_x: Any = Field(..., validation_alias=AliasChoices("destination_x", "destinationX"))
    destination_y: Any = Field(..., validation_alias=AliasChoices("destination_y", "destinationY"))


class WaitArgs(ActionArgs):
    seconds: Optional[float] = Field(default=None, ge=0)
    duration: Optional[float] = Field(default=None, ge=0)

    @property
    def resolved_seconds(self) -> float:
        if self.seconds is not None:
            return self.seconds
        if self.duration is not None:
            return self.duration
        return 1.0


ARGUMENT_SCHEMAS: Dict[ActionName, Type[ActionArgs]] = {
    ActionName.OPEN_WEB_BROWSER: NoArgs,
    ActionName.NAVIGATE: NavigateArgs,
    ActionName.SEARCH: NoArgs,
    ActionName.CLICK_AT: ClickAtArgs,
    ActionName.HOVER_AT: HoverAtArgs,
    ActionName.TYPE_TEXT_AT: TypeTextAtArgs,
    ActionName.KEY_COMBINATION: KeyCombinationArgs,
    ActionName.SCROLL_DOCUMENT: ScrollDocumentArgs,
    ActionName.SCROLL_AT: ScrollAtArgs,
    ActionName.DRAG_AND_DROP: DragAndDropArgs,
    ActionName.GO_BACK: NoArgs,
    ActionName.GO_FORWARD: NoArgs,
    ActionName.WAIT: WaitArgs,
    ActionName.WAIT_SECONDS: WaitArgs,
    ActionName.WAIT_FOR_SECONDS: WaitArgs,
    ActionName.WAIT_N_SECONDS: WaitArgs,
    ActionName.UNSUPPORTED: NoArgs,
}


@dataclass(frozen=True)
class BrowserAction:
    """A function call resolved against the vocabulary with validated args."""
    name: ActionName
    raw_name: str
    args: ActionArgs


def resolve_action_name(name: str) -> ActionName:
    """Map a model-supplied action name onto the closed vocabulary."""
    if _WAIT_N_SECONDS.match(name or ""):
        return ActionName.WAIT_N_SECONDS
    try:
        action = ActionName(name)
    except ValueError:
        return ActionName.UNSUPPORTED
    if action is ActionName.WAIT_N_SECONDS:
        return ActionName.UNSUPPORTED
    return action


def _describe_validation_error(action: str, exc: ValidationError) -> str:
    error = exc.errors()[0]
    loc = error.get("loc") or ()
    field_name = str(loc[0]) if loc else "arguments"
    if error.get("type") == "missing" or error.get("input") in (None, ""):
        return f"Missing '{field_name}' argument for {action} action"
    return f"Invalid '{field_name}' argument for {action} action: {error.get('msg')}"


def parse_action(call: FunctionCall) -> BrowserAction:
    """
    Resolve and validate a function call.

    Unknown names resolve to ActionName.UNSUPPORTED without validating
    arguments; the executor rejects them.

    Raises:
        InvalidArgumentError: a required argument is missing or malformed
    """
    name = resolve_action_name(call.name)
    raw_args: Dict[str, Any] = dict(call.args or {})

    if name is ActionName.WAIT_N_SECONDS:
        match = _WAIT_N_SECONDS.match(call.name)
        raw_args = {"seconds": int(match.group(1))}

    schema = ARGUMENT_SCHEMAS[name]
    try:
        args = schema.model_validate(raw_args)
    except ValidationError as exc:
        raise InvalidArgumentError(
            _describe_validation_error(call.name, exc),
            action_name=call.name,
            action_args=raw_args,
        ) from exc

    return BrowserAction(name=name, raw_name=call.name, args=args)


__all__ = [
    "ActionName",
    "ActionArgs",
    "NoArgs",
    "NavigateArgs",
    "PointArgs",
    "ClickAtArgs",
    "HoverAtArgs",
    "TypeTextAtArgs",
    "KeyCombinationArgs",
    "ScrollDocumentArgs",
    "ScrollAtArgs",
    "DragAndDropArgs",
    "WaitArgs",
    "ARGUMENT_SCHEMAS",
    "BrowserAction",
    "resolve_action_name",
    "parse_action",
    "DEFAULT_SCROLL_MAGNITUDE",
]
