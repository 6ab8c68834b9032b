"""Resumable multi-step workflows.

A step that needs another flow to run first does not call it. It returns a
``WorkflowToken`` naming the next step, the parameters to carry over and an
optional follow-up token, and the driver loop runs whatever comes next.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

from core.errors import BridgeError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkflowToken:
    """Which step runs next and with what parameters."""
    next_step: str
    saved: Mapping[str, Any] = field(default_factory=dict)
    follow_up: Optional["WorkflowToken"] = None


@dataclass
class StepResult:
    """What a step produced and where the workflow goes next."""
    outcome: Any = None
    next: Optional[WorkflowToken] = None


StepHandler = Callable[[WorkflowToken], Awaitable[StepResult]]


class Workflow:
    """Drives step handlers until no token is left."""

    def __init__(self, steps: Dict[str, StepHandler], max_steps: int = 6):
        """Initialize the driver.

        Args:
            steps: Handler per step name
            max_steps: Upper bound on executed steps; stops wrap/bridge ping-pong
        """
        self.steps = steps
        self.max_steps = max_steps
        self.trail = []  # names of executed steps

    async def run(self, token: WorkflowToken) -> Any:
        """Run from ``token`` and return the last step's outcome.

        Raises:
            BridgeError: If a step is unknown or the step bound is reached
        """
        outcome = None
        current: Optional[WorkflowToken] = token

        while current is not None:
            if len(self.trail) >= self.max_steps:
                raise BridgeError(f"Workflow stopped after {self.max_steps} steps")

            handler = self.steps.get(current.next_step)
            if handler is None:
                raise BridgeError(f"Unknown workflow step: {current.next_step}")

            logger.info(f"Running workflow step {current.next_step}")
            self.trail.append(current.next_step)
            result = await handler(current)
            outcome = result.outcome
            current = result.next

        return outcome
