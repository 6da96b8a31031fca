"""Worker Isolation Manager.

Builds one WorkerExecutionContext per parallel execution unit from a
frozen master registry and the engine configuration, and schedules
scenarios over a pool of asyncio workers.
"""
from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Any, Callable, List, Optional, Sequence

from bddmcp.domains.execution import ScenarioResult, StepDispatcher
from bddmcp.domains.healing import HealingEngine, HealingHistory
from bddmcp.domains.module_detection import (
    DetectionPolicy, ModuleDetector, ScenarioDescriptor,
)
from bddmcp.domains.step_registry import StepRegistry

from .aggregates import WorkerExecutionContext
from .events import WorkerStarted
from .services import NullBootstrapper, SubsystemBootstrapper

if TYPE_CHECKING:
    from bddmcp.models.config_models import EngineConfig

logger = logging.getLogger(__name__)


class WorkerIsolationManager:
    """Creates isolated worker contexts and runs scenarios in parallel.

    The master registry is frozen on construction; every context gets
    its own snapshot, detector, healing engine and healing history.
    """

    def __init__(
        self,
        registry: StepRegistry,
        config: "EngineConfig",
        bootstrapper: Optional[SubsystemBootstrapper] = None,
        engine_factory: Optional[Callable[[], HealingEngine]] = None,
        event_publisher: Optional[Callable[[Any], None]] = None,
    ):
        registry.freeze()
        self.registry = registry
        self.config = config
        self.policy: DetectionPolicy = config.detection_policy()
        self.bootstrapper = bootstrapper or NullBootstrapper()
        self.engine_factory = engine_factory or (lambda: HealingEngine.from_config(config))
        self.event_publisher = event_publisher
        self._created = 0

    def create_context(self, worker_id: Optional[str] = None) -> WorkerExecutionContext:
        self._created += 1
        worker_id = worker_id or f"worker-{self._created}"
        snapshot = self.registry.snapshot()
        engine = self.engine_factory()
        history = HealingHistory(max_per_locator=self.config.HEALING_HISTORY_SIZE)
        dispatcher = StepDispatcher.from_config(
            snapshot, self.config,
            healing_engine=engine,
            healing_history=history,
            event_publisher=self.event_publisher,
            executor=ThreadPoolExecutor(thread_name_prefix=worker_id),
        )
        if self.event_publisher is not None:
            self.event_publisher(WorkerStarted(worker_id=worker_id))
        logger.debug("[%s] Created worker context (%d steps, %d strategies)",
                     worker_id, len(snapshot), engine.strategy_count)
        return WorkerExecutionContext(
            worker_id=worker_id,
            registry=snapshot,
            detector=ModuleDetector(),
            healing_engine=engine,
            healing_history=history,
            dispatcher=dispatcher,
            policy=self.policy,
            bootstrapper=self.bootstrapper,
            event_publisher=self.event_publisher,
        )

    async def run_parallel(
        self,
        scenarios: Sequence[ScenarioDescriptor],
        workers: Optional[int] = None,
    ) -> List[ScenarioResult]:
        """Run scenarios on ``workers`` concurrent units.

        Each unit runs its scenarios sequentially and closes its context
        when the queue is drained or when it fails. Results are returned
        in input order; execution order across units is unspecified.

        Raises:
            Exception: The first error a unit raised, once every unit
                has finished and closed its context.
            RuntimeError: If a scenario produced no result.
        """
        count = max(1, min(workers or self.config.WORKERS, len(scenarios) or 1))
        queue: "asyncio.Queue[tuple[int, ScenarioDescriptor]]" = asyncio.Queue()
        for index, scenario in enumerate(scenarios):
            queue.put_nowait((index, scenario))
        results: List[Optional[ScenarioResult]] = [None] * len(scenarios)

        async def unit(n: int) -> None:
            async with self.create_context(f"worker-{n}") as context:
                while True:
                    try:
                        index, scenario = queue.get_nowait()
                    except asyncio.QueueEmpty:
                        return
                    results[index] = await context.run_scenario(scenario)

        logger.info("Running %d scenarios on %d workers", len(scenarios), count)
        outcomes = await asyncio.gather(
            *(unit(n) for n in range(1, count + 1)), return_exceptions=True,
        )
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome
        missing = [scenarios[i].name for i, r in enumerate(results) if r is None]
        if missing:
            raise RuntimeError(f"No result for scenarios: {', '.join(missing)}")
        return results  # type: ignore[return-value]
