"""
Agent Controller - conversation-driven browser control loop.

Each iteration:
- Observe: screenshot + URL go to the model as a user turn
- Decide: the model answers with text and/or function calls
- Act: function calls run in order through the ActionExecutor, each followed
  by a fresh screenshot that is sent back as a function response
- Repeat until the model stops calling functions or the iteration cap is hit
"""
from dataclasses import replace
from typing import List, Optional, Tuple

from action_executor import ActionExecutor
from action_result import ActionOutcome, OutcomeStatus
from agent.agent_task import AgentTask, TaskState
from ai_utils import ModelClient
from bot_config import AgentConfig
from browser_provider import BrowserSession
from error_handling import (
    ActionError,
    BotError,
    BrowserSessionError,
    EmptyModelResponseError,
    IterationLimitExceededError,
    ModelBlockedError,
    TaskCancelledError,
)
from models.conversation import (
    ConversationTurn,
    FunctionCall,
    FunctionResponsePart,
    ImagePart,
    TextPart,
)
from utils.cancellation import CancellationToken
from utils.event_logger import get_event_logger

COMPLETION_FALLBACK = "Task completed successfully"


class AgentController:
    """
    Drives one browser task at a time against a borrowed session.

    The controller never creates or closes the session. Per-action failures are
    reported to the model and the task goes on; model failures, the iteration
    cap and cancellation end the task.
    """

    def __init__(
        self,
        session: BrowserSession,
        model_client: ModelClient,
        max_iterations: int = 50,
        settle_delay_ms: int = 500,
        executor: Optional[ActionExecutor] = None,
    ):
        """
        Args:
            session: Browser session to act on
            model_client: Produces the next model turn
            max_iterations: Request/act cycles before IterationLimitExceededError
            settle_delay_ms: Pause after each successful action
            executor: Optional pre-built executor (defaults to one on `session`)
        """
        self.session = session
        self.model_client = model_client
        self.max_iterations = max_iterations
        self.settle_delay_ms = settle_delay_ms
        self.executor = executor or ActionExecutor(session)
        self.logger = get_event_logger()
        self.last_task: Optional[AgentTask] = None

    @classmethod
    def from_config(cls, session: BrowserSession, model_client: ModelClient, config: AgentConfig) -> "AgentController":
        return cls(
            session,
            model_client,
            max_iterations=config.execution.max_iterations,
            settle_delay_ms=config.execution.settle_delay_ms,
            executor=ActionExecutor(session, search_url=config.execution.search_url),
        )

    # ==================== Public API ====================

    def run_task(self, description: str, cancel_token: Optional[CancellationToken] = None) -> str:
        """
        Run a browser task to completion.

        Returns:
            The model's final text

        Raises:
            TaskCancelledError: cancel_token was cancelled
            ModelBlockedError / EmptyModelResponseError: unusable model turn
            IterationLimitExceededError: max_iterations cycles without finishing
            BrowserSessionError: a screenshot or URL read failed
        """
        token = cancel_token or CancellationToken()
        task = AgentTask(description=description, max_iterations=self.max_iterations)
        self.last_task = task

        self.logger.agent_start(description, task_id=task.task_id, max_iterations=task.max_iterations)

        try:
            return self._run(task, token)
        except TaskCancelledError as exc:
            task.mark_cancelled(exc.message)
            self.logger.agent_cancelled(token.reason, task_id=task.task_id, iteration=task.iteration_count)
            raise
        except BotError as exc:
            exc.context.iteration = task.iteration_count
            task.mark_failed(exc.message)
            self.logger.agent_error("Task failed", exc, task_id=task.task_id, iteration=task.iteration_count)
            raise
        except Exception as exc:
            task.mark_failed(str(exc))
            self.logger.agent_error("Task failed", exc, task_id=task.task_id, iteration=task.iteration_count)
            raise

    # ==================== Loop ====================

    def _run(self, task: AgentTask, token: CancellationToken) -> str:
        while task.has_iterations_left:
            token.raise_if_cancelled()
            iteration = task.begin_iteration()

            url = self._observe(task, token)
            self.logger.agent_iteration(iteration, task.max_iterations, url=url)

            model_turn = self._request(task, token)

            calls = model_turn.function_calls
            if not calls:
                result = "\n".join(model_turn.texts) or COMPLETION_FALLBACK
                task.mark_completed(result)
                self.logger.agent_complete(result, iterations=iteration, task_id=task.task_id)
                return result

            task.state = TaskState.DISPATCHING
            responses = self._dispatch(task, calls, token)
            task.append_turn(ConversationTurn.user(responses))

            if task.state is not TaskState.REQUIRES_CONFIRMATION:
                task.state = TaskState.AWAITING_NEXT_ITERATION

        raise IterationLimitExceededError(task.max_iterations)

    def _capture(self, token: CancellationToken) -> Tuple[ImagePart, str]:
        token.raise_if_cancelled()
        try:
            screenshot = self.session.screenshot()
            token.raise_if_cancelled()
            url = self.session.current_url()
        except TaskCancelledError:
            raise
        except Exception as exc:
            raise BrowserSessionError(f"Could not observe the page: {exc}") from exc
        token.raise_if_cancelled()
        return ImagePart(data=screenshot), url

    def _observe(self, task: AgentTask, token: CancellationToken) -> str:
        """Append the current screenshot and URL as a user turn."""
        image, url = self._capture(token)
        prefix = f"{task.description}. " if task.is_first_iteration else ""
        text = f"{prefix}Current URL: {url}"
        task.append_turn(ConversationTurn.user([TextPart(text=text), image]))
        self.logger.system_debug(f"User: {text}")
        return url

    def _request(self, task: AgentTask, token: CancellationToken) -> ConversationTurn:
        token.raise_if_cancelled()
        self.logger.model_request(len(task.conversation), iteration=task.iteration_count)
        response = self.model_client.generate(list(task.conversation))
        token.raise_if_cancelled()

        if response.is_blocked:
            raise ModelBlockedError(
                f"[Gemini] Prompt feedback: {response.block_reason_message} ({response.block_reason})",
                block_reason=response.block_reason,
            )
        if response.is_empty:
            raise EmptyModelResponseError("[Gemini] Empty response")

        turn = ConversationTurn.model(response.parts)
        task.append_turn(turn)
        for text in turn.texts:
            self.logger.model_text(text)
        return turn

    def _dispatch(self, task: AgentTask, calls: List[FunctionCall], token: CancellationToken) -> List[FunctionResponsePart]:
        """Execute calls in emission order and build one response per call."""
        responses: List[FunctionResponsePart] = []
        gated_call: Optional[FunctionCall] = None
        not_executed = 0

        for index, call in enumerate(calls):
            token.raise_if_cancelled()

            try:
                outcome = self.executor.execute(call, token)
            except ActionError as exc:
                image, url = self._capture(token)
                responses.append(self._error_response(call, exc, image, url))
                continue

            image, url = self._capture(token)
            responses.append(self._outcome_response(call, outcome, image, url))

            if outcome.requires_confirmation:
                gated_call = call
                pending_calls = calls[index + 1:]
                not_executed = len(pending_calls)
                for pending in pending_calls:
                    responses.append(self._not_executed_response(pending, gated_call, image, url))
                break

            if outcome.status is OutcomeStatus.SUCCESS and self.settle_delay_ms:
                token.wait(self.settle_delay_ms, self.session.wait_ms)

        if gated_call is not None:
            task.state = TaskState.REQUIRES_CONFIRMATION
            explanation = gated_call.safety_decision.explanation if gated_call.safety_decision else None
            self.logger.confirmation_required(
                gated_call.name,
                explanation=explanation,
                skipped_calls=not_executed,
            )
            responses = [self._acknowledge(response) for response in responses]

        return responses

    # ==================== Function responses ====================

    @staticmethod
    def _outcome_response(call: FunctionCall, outcome: ActionOutcome, image: ImagePart, url: str) -> FunctionResponsePart:
        payload = {
            "status": outcome.status.value,
            "message": outcome.message,
            "url": url,
            **outcome.data,
        }
        return FunctionResponsePart(name=call.name, response=payload, image=image, call_id=call.id)

    @staticmethod
    def _error_response(call: FunctionCall, error: ActionError, image: ImagePart, url: str) -> FunctionResponsePart:
        payload = {
            "status": OutcomeStatus.ERROR.value,
            "message": error.message,
            "error": f"{type(error).__name__}: {error.message}",
            "url": url,
        }
        return FunctionResponsePart(name=call.name, response=payload, image=image, call_id=call.id)

    @staticmethod
    def _not_executed_response(call: FunctionCall, gated_call: FunctionCall, image: ImagePart, url: str) -> FunctionResponsePart:
        payload = {
            "status": OutcomeStatus.SKIPPED.value,
            "message": f"Not executed: '{gated_call.name}' earlier in this turn requires confirmation",
            "url": url,
        }
        return FunctionResponsePart(name=call.name, response=payload, image=image, call_id=call.id)

    @staticmethod
    def _acknowledge(response: FunctionResponsePart) -> FunctionResponsePart:
        payload = {
            **response.response,
            "requires_confirmation": True,
            "safety_acknowledgement": "true",
        }
        return replace(response, response=payload)
