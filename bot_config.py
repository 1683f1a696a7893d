"""
Configuration models for the browser task agent.

Settings are grouped into small Pydantic models and collected in AgentConfig.

Example:
    >>> from bot_config import AgentConfig, ExecutionConfig
    >>> config = AgentConfig(execution=ExecutionConfig(max_iterations=20))
    >>> config = AgentConfig.from_env()
"""
from __future__ import annotations

import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field

from browser_provider import BrowserConfig

DEFAULT_MODEL = "gemini-2.5-computer-use-preview-10-2025"


class ModelConfig(BaseModel):
    """Gemini model configuration."""

    model_name: str = Field(
        default=DEFAULT_MODEL,
        description="Computer Use capable model"
    )
    api_key: Optional[str] = Field(
        default=None,
        description="Google AI API key"
    )
    system_instruction: str = Field(
        default="",
        description="Optional system instruction sent with every request"
    )
    excluded_predefined_functions: list[str] = Field(
        default_factory=list,
        description="Computer Use functions the model must not call"
    )


class ExecutionConfig(BaseModel):
    """Agent loop behavior."""

    max_iterations: int = Field(
        default=50,
        ge=1,
        description="Maximum request/act cycles before the task fails"
    )
    settle_delay_ms: int = Field(
        default=500,
        ge=0,
        description="Pause after each successful action so the UI can settle"
    )
    search_url: str = Field(
        default="https://www.google.com/",
        description="Page opened by the 'search' action"
    )


class DebugConfig(BaseModel):
    """Debugging and logging configuration."""

    debug_mode: bool = Field(
        default=True,
        description="Print events to the console"
    )


class AgentConfig(BaseModel):
    """
    Main configuration object for the browser task agent.

    Example:
        >>> config = AgentConfig(
        ...     model=ModelConfig(api_key="..."),
        ...     browser=BrowserConfig(headless=True)
        ... )
    """

    model: ModelConfig = Field(
        default_factory=ModelConfig,
        description="Model configuration"
    )
    execution: ExecutionConfig = Field(
        default_factory=ExecutionConfig,
        description="Agent loop configuration"
    )
    browser: BrowserConfig = Field(
        default_factory=BrowserConfig,
        description="Browser session configuration"
    )
    logging: DebugConfig = Field(
        default_factory=DebugConfig,
        description="Debug and logging configuration"
    )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> AgentConfig:
        """
        Build a configuration from environment variables.

        Reads GOOGLE_API_KEY (or GEMINI_API_KEY), MODEL, MAX_ITERATIONS,
        HEADLESS and DEBUG. Anything unset keeps its default.
        """
        env = os.environ if environ is None else environ

        model_settings = {"api_key": env.get("GOOGLE_API_KEY") or env.get("GEMINI_API_KEY") or None}
        if env.get("MODEL"):
            model_settings["model_name"] = env["MODEL"]
        model = ModelConfig(**model_settings)

        execution = ExecutionConfig()
        if env.get("MAX_ITERATIONS"):
            execution = ExecutionConfig(max_iterations=int(env["MAX_ITERATIONS"]))

        browser = BrowserConfig(headless=_env_flag(env.get("HEADLESS"), default=False))
        logging = DebugConfig(debug_mode=_env_flag(env.get("DEBUG"), default=True))

        return cls(model=model, execution=execution, browser=browser, logging=logging)


def _env_flag(value: Optional[str], default: bool) -> bool:
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")
