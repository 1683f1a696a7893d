#!/usr/bin/env python3
"""
Browser Task Agent - Main Entry Point

Asks for a task (or takes it from the command line), lets the model drive the
browser until it answers, and prints the answer. Ctrl+C cancels the running
task instead of killing the process.
"""

import signal
import sys
from typing import Optional

from InquirerPy import inquirer
from rich import print as rprint
from yaspin import yaspin

from bot_config import AgentConfig
from error_handling import BotError, ConfigurationError, TaskCancelledError
from task_runner import TaskRunner
from utils.cancellation import CancellationToken
from utils.event_logger import BotEvent, EventLogger, EventType, set_event_logger

SPINNER_EVENTS = (EventType.AGENT_ITERATION, EventType.ACTION_START, EventType.SESSION_RETRY)


def ask_for_task() -> str:
    return inquirer.text(
        message="What should the browser do?",
        long_instruction="Leave empty to exit",
    ).execute().strip()


def run_with_spinner(runner: TaskRunner, task: str) -> Optional[str]:
    """Run one task, mapping Ctrl+C to cancellation. Returns the answer or None."""
    token = CancellationToken()

    def on_interrupt(signum, frame):
        token.cancel("Interrupted by user")

    previous_handler = signal.signal(signal.SIGINT, on_interrupt)

    with yaspin(text="Starting browser...", color="cyan") as spinner:
        def follow_progress(event: BotEvent):
            if event.event_type in SPINNER_EVENTS:
                spinner.text = event.message

        runner.logger.register_callback(follow_progress)
        try:
            result = runner.run_task(task, token)
            spinner.ok("✅")
            return result
        except TaskCancelledError as e:
            spinner.fail("⚠️")
            rprint(f"[yellow]{e.message}[/yellow]")
        except ConfigurationError as e:
            spinner.fail("❌")
            rprint(f"[red]{e.message}[/red]")
            rprint("[dim]Set GOOGLE_API_KEY and try again.[/dim]")
        except BotError as e:
            spinner.fail("❌")
            rprint(f"[red]Task failed:[/red] {e.message}")
        except Exception as e:
            spinner.fail("❌")
            rprint(f"[red]Unexpected error:[/red] {e}")
        finally:
            runner.logger.unregister_callback(follow_progress)
            signal.signal(signal.SIGINT, previous_handler)

    return None


def main() -> int:
    """Main function"""
    config = AgentConfig.from_env()
    set_event_logger(EventLogger(debug_mode=config.logging.debug_mode))
    runner = TaskRunner(config)

    task = " ".join(sys.argv[1:]).strip()
    one_shot = bool(task)

    try:
        while True:
            if not task:
                try:
                    task = ask_for_task()
                except KeyboardInterrupt:
                    break
            if not task:
                break

            rprint(f"\n[bold]Task:[/bold] {task}\n")
            result = run_with_spinner(runner, task)
            if result is not None:
                rprint(f"\n[bold green]Result[/bold green]\n{result}\n")

            if one_shot:
                return 0 if result is not None else 1
            task = ""
    finally:
        runner.close()

    print("👋 Goodbye!\n")
    return 0


if __name__ == '__main__':
    sys.exit(main())
