"""
Action executor - turns model function calls into browser primitives.

One call in, one ActionOutcome out. Argument problems and browser failures are
raised as ActionError subclasses; the agent loop decides what to do with them.
"""
from __future__ import annotations

import sys
from typing import Callable, Dict, Optional

from action_result import ActionOutcome
from browser_provider import BrowserSession
from error_handling import (
    ActionError,
    ActionExecutionError,
    TaskCancelledError,
    UnsupportedActionError,
)
from models.actions import (
    ActionName,
    BrowserAction,
    ClickAtArgs,
    DragAndDropArgs,
    HoverAtArgs,
    KeyCombinationArgs,
    NavigateArgs,
    ScrollAtArgs,
    ScrollDocumentArgs,
    TypeTextAtArgs,
    WaitArgs,
    parse_action,
)
from models.conversation import FunctionCall
from utils.cancellation import CancellationToken
from utils.coordinates import normalize_x, normalize_y
from utils.event_logger import get_event_logger

DEFAULT_SEARCH_URL = "https://www.google.com/"
DRAG_STEPS = 20


def default_modifier_key() -> str:
    """Platform key used for select-all style shortcuts."""
    return "Meta" if sys.platform == "darwin" else "Control"


class ActionExecutor:
    """
    Executes browser actions requested by the model.

    Example:
        >>> executor = ActionExecutor(session)
        >>> outcome = executor.execute(FunctionCall.from_model("click_at", {"x": 500, "y": 500}))
        >>> dict(outcome.data)
        {'x': 720, 'y': 450, 'button': 'left', 'click_count': 1}
    """

    def __init__(
        self,
        session: BrowserSession,
        search_url: str = DEFAULT_SEARCH_URL,
        modifier_key: Optional[str] = None,
    ):
        self.session = session
        self.search_url = search_url
        self.modifier_key = modifier_key or default_modifier_key()
        self.logger = get_event_logger()
        self._token: CancellationToken = CancellationToken()

        self._handlers: Dict[ActionName, Callable[[BrowserAction], ActionOutcome]] = {
            ActionName.OPEN_WEB_BROWSER: self._execute_open_web_browser,
            ActionName.NAVIGATE: self._execute_navigate,
            ActionName.SEARCH: self._execute_search,
            ActionName.CLICK_AT: self._execute_click_at,
            ActionName.HOVER_AT: self._execute_hover_at,
            ActionName.TYPE_TEXT_AT: self._execute_type_text_at,
            ActionName.KEY_COMBINATION: self._execute_key_combination,
            ActionName.SCROLL_DOCUMENT: self._execute_scroll_document,
            ActionName.SCROLL_AT: self._execute_scroll_at,
            ActionName.DRAG_AND_DROP: self._execute_drag_and_drop,
            ActionName.GO_BACK: self._execute_go_back,
            ActionName.GO_FORWARD: self._execute_go_forward,
            ActionName.WAIT: self._execute_wait,
            ActionName.WAIT_SECONDS: self._execute_wait,
            ActionName.WAIT_FOR_SECONDS: self._execute_wait,
            ActionName.WAIT_N_SECONDS: self._execute_wait,
            ActionName.UNSUPPORTED: self._execute_unsupported,
        }
        missing = set(ActionName) - set(self._handlers)
        if missing:
            raise RuntimeError(f"No handler for actions: {sorted(a.value for a in missing)}")

    def execute(self, call: FunctionCall, cancel_token: Optional[CancellationToken] = None) -> ActionOutcome:
        """
        Execute one function call.

        Args:
            call: Function call emitted by the model
            cancel_token: Checked before each browser primitive

        Returns:
            ActionOutcome with status success, or skipped when the safety gate
            holds the action back

        Raises:
            InvalidArgumentError / InvalidCoordinateError: malformed arguments
            UnsupportedActionError: name outside the vocabulary
            ActionExecutionError: the browser failed mid-action
            TaskCancelledError: the token was cancelled
        """
        self._token = cancel_token or CancellationToken()

        if call.safety_decision and call.safety_decision.requires_confirmation:
            explanation = call.safety_decision.explanation or "confirmation required"
            outcome = ActionOutcome.skipped(
                f"Action '{call.name}' requires confirmation before execution: {explanation}",
                safety_decision=call.safety_decision.to_dict(),
            )
            self.logger.action_skipped(call.name, outcome.message)
            return outcome

        self.logger.action_start(call.name, call.args)

        try:
            action = parse_action(call)
            outcome = self._handlers[action.name](action)
        except TaskCancelledError:
            raise
        except ActionError as exc:
            exc.context.action_name = exc.context.action_name or call.name
            self.logger.action_failure(call.name, exc.message)
            raise
        except Exception as exc:
            self.logger.action_failure(call.name, str(exc))
            raise ActionExecutionError(
                f"Error executing action {call.name}: {exc}",
                action_name=call.name,
                action_args=dict(call.args),
            ) from exc

        self.logger.action_success(call.name, outcome.message)
        return outcome

    # ==================== Helpers ====================

    def _checkpoint(self) -> None:
        self._token.raise_if_cancelled()

    def _point(self, x, y) -> tuple[int, int]:
        width, height = self.session.viewport_size
        return normalize_x(x, width), normalize_y(y, height)

    # ==================== Handlers ====================

    def _execute_open_web_browser(self, action: BrowserAction) -> ActionOutcome:
        # Session is already acquired by the time the loop runs
        return ActionOutcome.success("Browser ready")

    def _execute_navigate(self, action: BrowserAction) -> ActionOutcome:
        args: NavigateArgs = action.args
        self._checkpoint()
        self.session.navigate(args.url)
        return ActionOutcome.success(f"Navigated to {args.url}", url=args.url)

    def _execute_search(self, action: BrowserAction) -> ActionOutcome:
        self._checkpoint()
        self.session.navigate(self.search_url)
        return ActionOutcome.success("Opened default search engine", url=self.search_url)

    def _execute_click_at(self, action: BrowserAction) -> ActionOutcome:
        args: ClickAtArgs = action.args
        x, y = self._point(args.x, args.y)
        self.logger.system_debug("click_at", x=x, y=y)

        self._checkpoint()
        self.session.pointer_move(x, y)
        self._checkpoint()
        self.session.pointer_click(x, y, button=args.button, click_count=args.click_count)

        return ActionOutcome.success(
            f"Clicked {args.button} at ({x}, {y})",
            x=x, y=y, button=args.button, click_count=args.click_count,
        )

    def _execute_hover_at(self, action: BrowserAction) -> ActionOutcome:
        args: HoverAtArgs = action.args
        x, y = self._point(args.x, args.y)
        self._checkpoint()
        self.session.pointer_move(x, y)
        return ActionOutcome.success(f"Hovered at ({x}, {y})", x=x, y=y)

    def _execute_type_text_at(self, action: BrowserAction) -> ActionOutcome:
        args: TypeTextAtArgs = action.args
        x, y = self._point(args.x, args.y)

        self._checkpoint()
        self.session.pointer_move(x, y)
        self._checkpoint()
        self.session.pointer_click(x, y)

        if args.clear_before_typing:
            self._checkpoint()
            self.session.keyboard_press(f"{self.modifier_key}+A")
            self._checkpoint()
            self.session.keyboard_press("Backspace")

        if args.text:
            self._checkpoint()
            self.session.keyboard_type(args.text)

        if args.press_enter:
            self._checkpoint()
            self.session.keyboard_press("Enter")

        return ActionOutcome.success(
            f"Typed '{args.text}' at ({x}, {y})",
            x=x, y=y, text=args.text, press_enter=args.press_enter,
        )

    def _execute_key_combination(self, action: BrowserAction) -> ActionOutcome:
        args: KeyCombinationArgs = action.args
        self._checkpoint()
        self.session.keyboard_press(args.keys)
        return ActionOutcome.success(f"Pressed key combination {args.keys}", keys=args.keys)

    def _execute_scroll_document(self, action: BrowserAction) -> ActionOutcome:
        args: ScrollDocumentArgs = action.args
        delta_x, delta_y = args.deltas()
        self._checkpoint()
        self.session.wheel_scroll(delta_x, delta_y)
        return ActionOutcome.success(
            f"Scrolled document {args.direction} ({delta_x:g}, {delta_y:g})",
            direction=args.direction, magnitude=args.magnitude,
        )

    def _execute_scroll_at(self, action: BrowserAction) -> ActionOutcome:
        args: ScrollAtArgs = action.args
        x, y = self._point(args.x, args.y)
        delta_x, delta_y = args.deltas()

        self._checkpoint()
        self.session.pointer_move(x, y)
        self._checkpoint()
        self.session.wheel_scroll(delta_x, delta_y)

        return ActionOutcome.success(
            f"Scrolled at ({x}, {y}) {args.direction}",
            x=x, y=y, direction=args.direction, magnitude=args.magnitude,
        )

    def _execute_drag_and_drop(self, action: BrowserAction) -> ActionOutcome:
        args: DragAndDropArgs = action.args
        x, y = self._point(args.x, args.y)
        destination_x, destination_y = self._point(args.destination_x, args.destination_y)

        self._checkpoint()
        self.session.pointer_move(x, y)
        self._checkpoint()
        self.session.pointer_down()
        try:
            self._checkpoint()
            self.session.pointer_move(destination_x, destination_y, steps=DRAG_STEPS)
        finally:
            # Release the button even when the drag is cancelled or fails
            self.session.pointer_up()

        return ActionOutcome.success(
            f"Dragged from ({x}, {y}) to ({destination_x}, {destination_y})",
            x=x, y=y, destination_x=destination_x, destination_y=destination_y,
        )

    def _execute_go_back(self, action: BrowserAction) -> ActionOutcome:
        self._checkpoint()
        self.session.go_back()
        return ActionOutcome.success("Navigated back", url=self.session.current_url())

    def _execute_go_forward(self, action: BrowserAction) -> ActionOutcome:
        self._checkpoint()
        self.session.go_forward()
        return ActionOutcome.success("Navigated forward", url=self.session.current_url())

    def _execute_wait(self, action: BrowserAction) -> ActionOutcome:
        args: WaitArgs = action.args
        seconds = args.resolved_seconds
        self._token.wait(seconds * 1000, self.session.wait_ms)
        return ActionOutcome.success(f"Waited {seconds:g} second(s)", seconds=seconds)

    def _execute_unsupported(self, action: BrowserAction) -> ActionOutcome:
        raise UnsupportedActionError(
            f"Unknown or unsupported action: {action.raw_name}",
            action_name=action.raw_name,
        )
