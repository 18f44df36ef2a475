"""
Question pool maintenance controller.

Keeps the `to_review` buffer at the configured target size by generating
questions in bounded concurrent batches. One controller owns the generation
flags for the whole process; overlapping triggers (scheduler ticks, manual
admin runs, buffer refills) are resolved by a check-and-set guard that never
suspends.
"""

import asyncio
import logging
import random
import threading
import time
from typing import Any, List, Optional

from ai.errors import GenerationError, ProviderUnavailableError
from ai.generation_client import GenerationClient
from services.errors import DuplicateQuestionError, StoreUnavailableError
from services.generation_settings import GenerationSettings, SettingsRepository
from services.generation_space import (
    GenerationSlot,
    SlotHistoryRepository,
    select_generation_slot,
)
from services.question_store import (
    STATUS_TO_REVIEW,
    GenerationLogRepository,
    QuestionStore,
    question_hash,
)

from .models import (
    NO_PROVIDER_AVAILABLE,
    SKIP_ALREADY_RUNNING,
    SKIP_DISABLED,
    SKIP_PAUSED,
    SKIP_REFILL_DISABLED,
    GenerationRun,
    MaintenanceResult,
    PoolState,
    RunKind,
    RunOutcome,
    RunStatus,
)

logger = logging.getLogger(__name__)

MAX_DUPLICATE_RETRIES = 3


class PoolMaintenanceController:
    def __init__(
        self,
        store: QuestionStore,
        settings_repository: SettingsRepository,
        generation_client: GenerationClient,
        log_repository: Optional[GenerationLogRepository] = None,
        call_timeout: float = 120.0,
        max_batches_per_run: int = 10,
        slot_history: Optional[SlotHistoryRepository] = None,
        rng: Optional[random.Random] = None,
    ):
        self._store = store
        self._settings = settings_repository
        self._client = generation_client
        self._logs = log_repository
        self._slot_history = slot_history
        self._rng = rng or random.Random()
        self._call_timeout = call_timeout
        self._max_batches = max(1, max_batches_per_run)
        self._state = PoolState()
        # Held only for reads/writes of the state, never across an await.
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Admin controls and status
    # ------------------------------------------------------------------

    def _flags(self) -> dict[str, bool]:
        return {
            "is_generating": self._state.is_generating,
            "is_paused": self._state.is_paused,
        }

    def pause_generation(self) -> dict[str, bool]:
        """Stop new runs and new batches. In-flight calls are left to finish."""
        with self._lock:
            self._state.is_paused = True
            flags = self._flags()
        logger.info("Generation paused by admin", extra=flags)
        return flags

    def resume_generation(self) -> dict[str, bool]:
        """Allow the next trigger to run. Does not start a run by itself."""
        with self._lock:
            self._state.is_paused = False
            flags = self._flags()
        logger.info("Generation resumed by admin", extra=flags)
        return flags

    def get_generation_status(self) -> dict[str, Any]:
        with self._lock:
            current = self._state.current_generation
            last = self._state.last_run
            return {
                **self._flags(),
                "current_generation": current.to_dict() if current else None,
                "last_run": last.to_dict() if last else None,
            }

    async def get_buffer_status(self) -> dict[str, Any]:
        """
        Review buffer fill level against `buffer_size`, with the questions the
        active run still has to produce and a summary of the latest run.

        Raises:
            StoreUnavailableError: if Supabase cannot be reached.
        """
        settings = await asyncio.to_thread(self._settings.read)
        current_size = await self._count_pool()

        with self._lock:
            current = self._state.current_generation
            last = self._state.last_run
            latest = current or last
            queued = current.remaining if current and current.status == RunStatus.GENERATING else 0
            last_generation = {
                "last_started_at": latest.started_at.isoformat() if latest else None,
                "last_finished_at": (
                    last.finished_at.isoformat() if last and last.finished_at else None
                ),
                "last_error": last.error if last else None,
                "in_flight": self._state.is_generating,
            }
            is_generating = self._state.is_generating

        return {
            "current_size": current_size,
            "target_size": settings.buffer_size,
            "missing": max(0, settings.buffer_size - current_size),
            "is_generating": is_generating,
            "auto_refill_enabled": settings.auto_refill_enabled,
            "queued_jobs": queued,
            "last_generation": last_generation,
        }

    @property
    def is_paused(self) -> bool:
        with self._lock:
            return self._state.is_paused

    # ------------------------------------------------------------------
    # Maintenance run
    # ------------------------------------------------------------------

    def _try_acquire(self) -> Optional[str]:
        """Check-and-set the generating flag. Returns a skip reason, or None when acquired."""
        with self._lock:
            if self._state.is_generating:
                return SKIP_ALREADY_RUNNING
            if self._state.is_paused:
                return SKIP_PAUSED
            self._state.is_generating = True
            return None

    def _release(self, run: Optional[GenerationRun]) -> None:
        with self._lock:
            self._state.is_generating = False
            self._state.current_generation = None
            if run is not None:
                self._state.last_run = run

    def _publish(self, run: GenerationRun) -> None:
        with self._lock:
            self._state.current_generation = run

    async def _count_pool(self) -> int:
        return await asyncio.to_thread(self._store.count, STATUS_TO_REVIEW)

    async def maintain_pool(self) -> MaintenanceResult:
        """
        Run one maintenance cycle up to `target_pool_size`.

        Returns a skipped result when a run is already active, generation is
        paused, or auto-generation is disabled. Returns outcome `no_provider`
        when no AI provider is reachable before any question is generated.

        Raises:
            StoreUnavailableError: if Supabase cannot be reached. Flags are reset.
        """
        return await self._run_cycle(RunKind.POOL)

    async def ensure_buffer_filled(self) -> MaintenanceResult:
        """
        Refill the review buffer up to `buffer_size`.

        Shares the guard with `maintain_pool`, so a refill never overlaps a
        maintenance run. Skipped when auto-refill is disabled.
        """
        return await self._run_cycle(RunKind.BUFFER)

    async def _run_cycle(self, kind: RunKind) -> MaintenanceResult:
        skip_reason = self._try_acquire()
        if skip_reason:
            logger.debug(f"{kind.value} run skipped: {skip_reason}")
            return MaintenanceResult.skip(skip_reason)

        run: Optional[GenerationRun] = None
        log_id = None
        started = time.monotonic()

        try:
            settings = await asyncio.to_thread(self._settings.read)
            if kind == RunKind.BUFFER:
                skip_reason = None if settings.auto_refill_enabled else SKIP_REFILL_DISABLED
                target = settings.buffer_size
            else:
                skip_reason = None if settings.auto_generate_enabled else SKIP_DISABLED
                target = settings.target_pool_size
            if skip_reason:
                logger.debug(f"{kind.value} run skipped: {skip_reason}")
                return MaintenanceResult.skip(skip_reason)

            run = GenerationRun(
                pool_size_before=await self._count_pool(),
                target_pool_size=target,
                max_concurrent=max(1, settings.max_concurrent_generation),
                topic=settings.generation_topic,
                difficulty=settings.generation_difficulty,
                kind=kind,
                structured_space=settings.structured_space_enabled,
            )
            self._publish(run)

            if run.deficit <= 0:
                run.pool_size_after = run.pool_size_before
                run.finish(RunStatus.COMPLETED)
                logger.debug(
                    f"Pool is full ({run.pool_size_before}/{run.target_pool_size}), nothing to generate"
                )
                return MaintenanceResult.from_run(run, RunOutcome.POOL_FULL)

            logger.info(
                f"Pool at {run.pool_size_before}/{run.target_pool_size}, "
                f"need to generate {run.deficit}",
                extra={"kind": kind.value, "topic": run.topic, "difficulty": run.difficulty},
            )

            if self._logs is not None:
                log_id = await asyncio.to_thread(
                    self._logs.start,
                    settings.id,
                    run.topic,
                    run.difficulty,
                    run.deficit,
                    run.pool_size_before,
                )

            try:
                await self._client.get_provider(settings.default_model)
            except ProviderUnavailableError as e:
                logger.warning(f"Pool maintenance aborted: {e}")
                run.pool_size_after = run.pool_size_before
                run.finish(RunStatus.FAILED, error=NO_PROVIDER_AVAILABLE)
                await self._finish_log(log_id, run, started)
                return MaintenanceResult.from_run(
                    run, RunOutcome.NO_PROVIDER, reason=NO_PROVIDER_AVAILABLE
                )

            await self._run_batches(run, settings)

            run.pool_size_after = await self._count_pool()
            await self._finish_log(log_id, run, started)

            if run.error == NO_PROVIDER_AVAILABLE:
                return MaintenanceResult.from_run(
                    run, RunOutcome.NO_PROVIDER, reason=NO_PROVIDER_AVAILABLE
                )
            if run.status == RunStatus.GENERATING:
                run.finish(RunStatus.COMPLETED)

            logger.info(
                f"Generated {run.generated} questions. "
                f"Pool: {run.pool_size_before} -> {run.pool_size_after}",
                extra={"kind": kind.value, "failed": run.failed, "batches": run.batches},
            )
            return MaintenanceResult.from_run(run, RunOutcome.COMPLETED)

        except StoreUnavailableError as e:
            logger.error(f"Pool maintenance aborted, store unavailable: {e}")
            if run is not None:
                run.finish(RunStatus.FAILED, error=str(e))
            raise

        finally:
            self._release(run)

    async def _run_batches(self, run: GenerationRun, settings: GenerationSettings) -> None:
        run.status = RunStatus.GENERATING

        while run.remaining > 0:
            if self.is_paused:
                logger.info("Generation paused, not dispatching further batches")
                run.finish(RunStatus.PAUSED)
                return

            batch_size = min(run.remaining, run.max_concurrent)
            run.batches += 1
            run.attempted += batch_size
            logger.debug(f"Dispatching batch {run.batches} with {batch_size} generation calls")

            slots = await self._select_slots(settings, batch_size)
            results = await asyncio.gather(
                *(self._generate_one(settings, slot) for slot in slots),
                return_exceptions=True,
            )

            stored = 0
            unavailable = 0
            for result in results:
                if isinstance(result, StoreUnavailableError):
                    raise result
                if isinstance(result, BaseException):
                    run.failed += 1
                    if isinstance(result, ProviderUnavailableError):
                        unavailable += 1
                    logger.warning(
                        f"Generation attempt failed: {result}",
                        extra={"error_type": type(result).__name__, "batch": run.batches},
                    )
                else:
                    stored += 1
            run.generated += stored

            if run.generated == 0 and unavailable == len(results):
                logger.warning("No AI provider answered any call of the first batch, ending run")
                run.finish(RunStatus.FAILED, error=NO_PROVIDER_AVAILABLE)
                return
            if stored == 0:
                logger.warning(f"Batch {run.batches} stored no questions, ending run")
                return
            if run.batches >= self._max_batches:
                logger.info(f"Reached {self._max_batches} batches for this run")
                return

    async def _select_slots(
        self, settings: GenerationSettings, count: int
    ) -> List[Optional[GenerationSlot]]:
        """
        One slot per call of the batch, or None for each call when the
        structured space is off. Slots picked for the same batch are distinct
        while the space allows it.
        """
        if not settings.structured_space_enabled:
            return [None] * count

        recent: List[GenerationSlot] = []
        if self._slot_history is not None:
            recent = await asyncio.to_thread(self._slot_history.recent)

        config = settings.space_config()
        slots: List[Optional[GenerationSlot]] = []
        try:
            for _ in range(count):
                slots.append(select_generation_slot(config, [*recent, *slots], self._rng))
        except ValueError as e:
            logger.warning(f"{e}, falling back to the configured topic")
            return [None] * count
        return slots

    async def _generate_one(
        self, settings: GenerationSettings, slot: Optional[GenerationSlot] = None
    ) -> Any:
        """
        Generate, deduplicate and store one question. Returns the new question id.

        Duplicates are retried with a variation hint, up to MAX_DUPLICATE_RETRIES.
        """
        if slot is not None:
            topic, difficulty, focus = slot.domain, slot.difficulty_level, slot.focus
        else:
            topic, difficulty, focus = settings.generation_topic, settings.generation_difficulty, None

        for attempt in range(MAX_DUPLICATE_RETRIES):
            variation = f"Attempt {attempt + 1}/{MAX_DUPLICATE_RETRIES}" if attempt else None
            try:
                candidate = await asyncio.wait_for(
                    self._client.generate(
                        topic,
                        difficulty,
                        preferred=settings.default_model,
                        variation=variation,
                        focus=focus,
                    ),
                    timeout=self._call_timeout,
                )
            except asyncio.TimeoutError as e:
                raise GenerationError(
                    f"Generation call timed out after {self._call_timeout}s"
                ) from e

            hash_value = question_hash(candidate.question.question_text)
            if await asyncio.to_thread(self._store.exists_by_hash, hash_value):
                logger.info(f"Duplicate question detected (attempt {attempt + 1}), retrying")
                continue

            question_id = await asyncio.to_thread(
                self._store.insert,
                candidate.question,
                topic,
                candidate.provider,
                hash_value,
                slot=slot,
            )
            if slot is not None and self._slot_history is not None:
                await asyncio.to_thread(self._slot_history.record, slot, question_id)
            return question_id

        raise DuplicateQuestionError(
            f"Failed to generate a unique question after {MAX_DUPLICATE_RETRIES} attempts"
        )

    async def _finish_log(self, log_id: Any, run: GenerationRun, started: float) -> None:
        if self._logs is None:
            return
        await asyncio.to_thread(
            self._logs.finish,
            log_id,
            run.generated,
            run.failed,
            run.pool_size_after if run.pool_size_after is not None else run.pool_size_before,
            int((time.monotonic() - started) * 1000),
            run.error,
        )
