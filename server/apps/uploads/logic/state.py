"""State tracking for a single pipeline run."""

import enum
import logging
from dataclasses import dataclass
from typing import Final

from server.apps.uploads.exceptions import PipelineStateError
from server.apps.uploads.models import FileRecord, PipelineKind

logger = logging.getLogger(__name__)


class PipelineState(enum.StrEnum):
    """Steps of a pipeline run."""

    RECEIVED = 'received'
    VALIDATED = 'validated'
    TRANSFORMED = 'transformed'
    PERSISTED = 'persisted'
    DONE = 'done'
    FAILED = 'failed'


_TRANSITIONS: Final[dict[PipelineState, frozenset[PipelineState]]] = {
    PipelineState.RECEIVED: frozenset((
        PipelineState.VALIDATED,
        PipelineState.FAILED,
    )),
    PipelineState.VALIDATED: frozenset((
        PipelineState.TRANSFORMED,
        PipelineState.FAILED,
    )),
    PipelineState.TRANSFORMED: frozenset((
        PipelineState.PERSISTED,
        PipelineState.FAILED,
    )),
    PipelineState.PERSISTED: frozenset((
        PipelineState.DONE,
        PipelineState.FAILED,
    )),
    PipelineState.DONE: frozenset(),
    PipelineState.FAILED: frozenset(),
}


@dataclass
class PipelineRun:
    """Progress of one upload through a pipeline.

    The record is created when the run is validated and mutated in
    place by each step until it is persisted.
    """

    kind: PipelineKind
    record: FileRecord | None = None
    state: PipelineState = PipelineState.RECEIVED
    failure_reason: str = ''

    @property
    def is_terminal(self) -> bool:
        """Whether the run reached done or failed."""
        return not _TRANSITIONS[self.state]

    def advance(self, state: PipelineState) -> None:
        """Move the run to the next state.

        Args:
            state: Target state.

        Raises:
            PipelineStateError: If the transition is not allowed.
        """
        if state not in _TRANSITIONS[self.state]:
            raise PipelineStateError(
                f'{self.kind} pipeline cannot move from {self.state} to {state}',
            )
        logger.debug('%s pipeline: %s -> %s', self.kind, self.state, state)
        self.state = state

    def fail(self, reason: str) -> None:
        """Mark the run as failed.

        Args:
            reason: Human-readable failure description.
        """
        self.advance(PipelineState.FAILED)
        self.failure_reason = reason
