"""
Models for pool maintenance runs and their results.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel

SKIP_ALREADY_RUNNING = "already running"
SKIP_PAUSED = "paused"
SKIP_DISABLED = "disabled"
SKIP_REFILL_DISABLED = "auto-refill disabled"
NO_PROVIDER_AVAILABLE = "no provider available"


class RunKind(str, Enum):
    """What a run fills up to: the pool target or the review buffer size."""

    POOL = "pool"
    BUFFER = "buffer"


class RunOutcome(str, Enum):
    SKIPPED = "skipped"
    POOL_FULL = "pool_full"
    COMPLETED = "completed"
    NO_PROVIDER = "no_provider"


class RunStatus(str, Enum):
    STARTING = "starting"
    GENERATING = "generating"
    COMPLETED = "completed"
    PAUSED = "paused"
    FAILED = "failed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class GenerationRun:
    """A single maintenance cycle. Mutated only by the controller."""

    pool_size_before: int
    target_pool_size: int
    max_concurrent: int
    topic: str
    difficulty: str
    kind: RunKind = RunKind.POOL
    structured_space: bool = False
    pool_size_after: Optional[int] = None
    generated: int = 0
    failed: int = 0
    attempted: int = 0
    batches: int = 0
    status: RunStatus = RunStatus.STARTING
    error: Optional[str] = None
    started_at: datetime = field(default_factory=_utcnow)
    finished_at: Optional[datetime] = None

    @property
    def deficit(self) -> int:
        return max(0, self.target_pool_size - self.pool_size_before)

    @property
    def remaining(self) -> int:
        return max(0, self.deficit - self.generated)

    @property
    def progress(self) -> float:
        if self.deficit == 0:
            return 100.0
        return round(min(self.attempted, self.deficit) / self.deficit * 100, 1)

    def finish(self, status: RunStatus, error: Optional[str] = None) -> None:
        self.status = status
        self.error = error
        self.finished_at = _utcnow()

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        data["kind"] = self.kind.value
        data["deficit"] = self.deficit
        data["progress"] = self.progress
        data["started_at"] = self.started_at.isoformat()
        data["finished_at"] = self.finished_at.isoformat() if self.finished_at else None
        return data


@dataclass
class PoolState:
    """Process-wide generation flags, owned by one controller."""

    is_generating: bool = False
    is_paused: bool = False
    current_generation: Optional[GenerationRun] = None
    last_run: Optional[GenerationRun] = None


class MaintenanceResult(BaseModel):
    """Summary returned by `maintain_pool`."""

    skipped: bool
    outcome: RunOutcome
    reason: Optional[str] = None
    pool_size_before: Optional[int] = None
    pool_size_after: Optional[int] = None
    generated: Optional[int] = None
    failed: Optional[int] = None

    @classmethod
    def skip(cls, reason: str) -> "MaintenanceResult":
        return cls(skipped=True, outcome=RunOutcome.SKIPPED, reason=reason)

    @classmethod
    def from_run(
        cls, run: GenerationRun, outcome: RunOutcome, reason: Optional[str] = None
    ) -> "MaintenanceResult":
        return cls(
            skipped=False,
            outcome=outcome,
            reason=reason,
            pool_size_before=run.pool_size_before,
            pool_size_after=run.pool_size_after,
            generated=run.generated,
            failed=run.failed,
        )
