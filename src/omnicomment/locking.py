from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from contextlib import contextmanager
import logging
import time
from typing import Final, Iterator

from omnicomment.models import Reaction, ResourceKind
from omnicomment.observability import log_event
from omnicomment.retry import retry


LOGGER = logging.getLogger("omnicomment.locking")
LOCK_REACTION_CONTENT: Final[str] = "eyes"
DEFAULT_LOCK_ATTEMPTS: Final[int] = 10
DEFAULT_LOCK_DELAY_SECONDS: Final[float] = 1.0


class LockNotAcquiredError(RuntimeError):
    """Raised when the lock reaction stayed held by someone else for every attempt."""

    def __init__(self, kind: ResourceKind, resource_id: int) -> None:
        super().__init__(f"Lock not acquired on {kind} {resource_id}")
        self.kind = kind
        self.resource_id = resource_id


class ReactionStore(ABC):
    @abstractmethod
    def create_reaction(self, kind: ResourceKind, resource_id: int, content: str) -> Reaction:
        """Create the reaction if absent; ``Reaction.created`` is False when it already existed."""

    @abstractmethod
    def delete_reaction(self, kind: ResourceKind, resource_id: int, reaction_id: int) -> None:
        """Delete a reaction by id."""


@contextmanager
def resource_lock(
    reactions: ReactionStore,
    kind: ResourceKind,
    resource_id: int,
    *,
    max_attempts: int = DEFAULT_LOCK_ATTEMPTS,
    delay_seconds: float = DEFAULT_LOCK_DELAY_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> Iterator[Reaction]:
    lock = _ReactionLock(reactions=reactions, kind=kind, resource_id=resource_id)
    reaction = retry(
        lock.try_acquire,
        max_attempts=max_attempts,
        delay_seconds=delay_seconds,
        sleep=sleep,
    )
    try:
        yield reaction
    finally:
        lock.release()


class _ReactionLock:
    def __init__(self, *, reactions: ReactionStore, kind: ResourceKind, resource_id: int) -> None:
        self._reactions = reactions
        self._kind = kind
        self._resource_id = resource_id
        self._reaction_id: int | None = None

    def try_acquire(self, attempt: int, max_attempts: int) -> Reaction:
        log_event(
            LOGGER,
            "lock_attempt",
            kind=self._kind,
            resource_id=self._resource_id,
            attempt=attempt + 1,
            max_attempts=max_attempts,
        )
        reaction = self._reactions.create_reaction(
            self._kind, self._resource_id, LOCK_REACTION_CONTENT
        )
        if reaction.created:
            self._reaction_id = reaction.reaction_id
            log_event(
                LOGGER,
                "lock_acquired",
                kind=self._kind,
                resource_id=self._resource_id,
                reaction_id=reaction.reaction_id,
                attempt=attempt + 1,
            )
            return reaction

        log_event(
            LOGGER,
            "lock_contended",
            kind=self._kind,
            resource_id=self._resource_id,
            reaction_id=reaction.reaction_id,
            attempt=attempt + 1,
        )
        # Last attempt: break a lock whose holder never released it, then fail.
        if attempt + 1 == max_attempts:
            self._reactions.delete_reaction(self._kind, self._resource_id, reaction.reaction_id)
            LOGGER.warning(
                "event=lock_force_released kind=%s resource_id=%s reaction_id=%s",
                self._kind,
                self._resource_id,
                reaction.reaction_id,
            )
        raise LockNotAcquiredError(self._kind, self._resource_id)

    def release(self) -> None:
        if self._reaction_id is None:
            return
        reaction_id = self._reaction_id
        self._reaction_id = None
        self._reactions.delete_reaction(self._kind, self._resource_id, reaction_id)
        log_event(
            LOGGER,
            "lock_released",
            kind=self._kind,
            resource_id=self._resource_id,
            reaction_id=reaction_id,
        )
