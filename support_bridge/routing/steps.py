"""
Best-effort execution of side-effect steps.

Closing a session or posting a new conversation touches several
independent Telegram messages. A failure in one of them must not stop the
others, so each step runs on its own and reports a StepResult instead of
raising.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Tuple

from support_bridge.logging_config import logger


Step = Tuple[str, Callable[[], Awaitable[Any]]]


@dataclass
class StepResult:
    name: str
    ok: bool
    value: Any = None
    error: Optional[str] = None


async def run_step(name: str, action: Callable[[], Awaitable[Any]], *, context: str = "") -> StepResult:
    try:
        value = await action()
    except Exception as exc:
        logger.warning("Step %s failed%s: %s", name, f" ({context})" if context else "", exc)
        return StepResult(name=name, ok=False, error=str(exc))
    return StepResult(name=name, ok=True, value=value)


async def run_steps(steps: Sequence[Step], *, context: str = "") -> List[StepResult]:
    """
    Run every step in order and collect the results; never short-circuits.
    """
    results: List[StepResult] = []
    for name, action in steps:
        results.append(await run_step(name, action, context=context))
    return results


def failed_steps(results: Sequence[StepResult]) -> List[str]:
    return [result.name for result in results if not result.ok]


__all__ = ["Step", "StepResult", "failed_steps", "run_step", "run_steps"]
