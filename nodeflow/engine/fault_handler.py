"""
Error classification and the retry/fallback policy of error_handler nodes.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import httpx

from ..core.config import Settings, get_settings
from ..core.exceptions import (
    Cancelled,
    NodeError,
    PermanentError,
    TransientError,
    UserStop,
    ValidationError,
    WorkflowEngineError,
)
from .types import NodeExecutionResult

logger = logging.getLogger(__name__)

_NEVER_CAUGHT = (ValidationError, UserStop, Cancelled)


@dataclass
class RetryPolicy:
    """Retry/fallback settings taken from an error_handler node."""

    max_retries: int = 3
    retry_delay: int = 1000  # milliseconds
    fallback_value: Any = None

    @classmethod
    def from_config(cls, config: dict[str, Any], settings: Settings | None = None) -> RetryPolicy:
        settings = settings or get_settings()
        retries = config.get("maxRetries", config.get("retries"))
        delay = config.get("retryDelay")
        return cls(
            max_retries=max(0, int(_number(retries, settings.default_max_retries))),
            retry_delay=max(0, int(_number(delay, settings.default_retry_delay))),
            fallback_value=_parse_fallback(config.get("fallbackValue")),
        )


def _number(value: Any, default: int) -> float:
    if value is None or value == "" or isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _parse_fallback(value: Any) -> Any:
    """JSON text becomes its value; anything else is kept as a plain string."""
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


@dataclass
class DispatchOutcome:
    result: NodeExecutionResult
    attempts: int
    error: NodeError | None = None
    fallback: bool = False


class FaultHandler:
    """Normalizes exceptions and applies retry/fallback around a dispatch."""

    def __init__(self, sleep: Callable[[float], Awaitable[Any]] | None = None) -> None:
        self._sleep = sleep or asyncio.sleep

    def classify(self, exc: BaseException, node_id: str | None = None) -> NodeError:
        """Map any exception raised by a handler onto the error taxonomy."""
        if isinstance(exc, NodeError):
            if exc.node_id is None:
                exc.node_id = node_id
            return exc

        error: NodeError
        if isinstance(exc, httpx.HTTPStatusError):
            status = exc.response.status_code
            message = f"HTTP {status} from {exc.request.url}"
            context = {"status": status}
            if status >= 500 or status == 429:
                error = TransientError(message, node_id=node_id, context=context)
            else:
                error = PermanentError(message, node_id=node_id, context=context)
        elif isinstance(exc, (asyncio.TimeoutError, httpx.TimeoutException)):
            error = TransientError(f"Timed out: {exc}".rstrip(": "), node_id=node_id)
        elif isinstance(exc, (httpx.TransportError, ConnectionError, OSError)):
            error = TransientError(str(exc) or type(exc).__name__, node_id=node_id)
        elif isinstance(exc, WorkflowEngineError):
            error = PermanentError(exc.message, node_id=node_id, context=exc.details)
        else:
            error = PermanentError(str(exc) or type(exc).__name__, node_id=node_id)
        error.__cause__ = exc
        return error

    async def execute(
        self,
        call: Callable[[], Awaitable[NodeExecutionResult]],
        node_id: str,
        policy: RetryPolicy | None = None,
    ) -> DispatchOutcome:
        """
        Run one dispatch under an optional policy.

        Without a policy the first failure propagates. With one, transient
        errors retry up to `max_retries` times with a fixed delay; a permanent
        error or exhausted retries yields the policy's fallback value.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                result = await call()
                return DispatchOutcome(result=result, attempts=attempt)
            except Exception as exc:
                error = self.classify(exc, node_id)
                error.attempts = attempt

                if policy is None or isinstance(error, _NEVER_CAUGHT):
                    raise error

                if error.retryable and attempt <= policy.max_retries:
                    logger.warning(
                        "Node %s failed (attempt %d/%d): %s; retrying in %dms",
                        node_id, attempt, policy.max_retries + 1, error.message, policy.retry_delay,
                    )
                    await self._sleep(policy.retry_delay / 1000)
                    continue

                logger.warning(
                    "Node %s failed after %d attempt(s): %s; using fallback value",
                    node_id, attempt, error.message,
                )
                return DispatchOutcome(
                    result=NodeExecutionResult(data=policy.fallback_value, pass_through=False),
                    attempts=attempt,
                    error=error,
                    fallback=True,
                )
