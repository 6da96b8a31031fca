"""Worker Domain Aggregate Root.

A WorkerExecutionContext owns every piece of mutable engine state one
parallel execution unit uses. Nothing inside it is shared with another
context, so workers never need locks.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from bddmcp.domains.execution import (
    ScenarioResult, ScenarioRunner, StepContext, StepDispatcher,
)
from bddmcp.domains.healing import HealingEngine, HealingHistory
from bddmcp.domains.module_detection import (
    DetectionPolicy, ModuleDetector, ModuleRequirement, ScenarioDescriptor,
)
from bddmcp.domains.shared.kernel import Milliseconds
from bddmcp.domains.step_registry import StepRegistry

from .events import WorkerClosed
from .services import NullBootstrapper, SubsystemBootstrapper

logger = logging.getLogger(__name__)


@dataclass
class WorkerExecutionContext:
    """Aggregate root: one worker's registry snapshot, detector and healer.

    Invariants:
        - The registry is a frozen snapshot private to this context.
        - ``close`` always shuts down the handler executor and clears the
          detector cache, healing strategies, healing history and
          registry snapshot, even if teardown of external subsystems
          fails.
        - A closed context refuses to run scenarios.
    """
    worker_id: str
    registry: StepRegistry
    detector: ModuleDetector
    healing_engine: HealingEngine
    healing_history: HealingHistory
    dispatcher: StepDispatcher
    policy: DetectionPolicy = field(default_factory=DetectionPolicy)
    bootstrapper: SubsystemBootstrapper = field(default_factory=NullBootstrapper)
    event_publisher: Optional[Callable[[Any], None]] = None
    scenarios_run: int = 0
    _closed: bool = False

    def detect(self, scenario: ScenarioDescriptor) -> ModuleRequirement:
        return self.detector.detect(scenario, self.policy)

    async def run_scenario(
        self,
        scenario: ScenarioDescriptor,
        context: Optional[StepContext] = None,
    ) -> ScenarioResult:
        """Detect modules, bootstrap them, then run the steps in order.

        A bootstrap failure is reported on the ScenarioResult and no
        step runs.
        """
        if self._closed:
            raise RuntimeError(f"Worker context {self.worker_id} is closed")

        requirement = self.detect(scenario)
        to_bootstrap = self.detector.bootstrap_requirement(requirement, self.policy)
        start = time.monotonic()
        try:
            driver = await self.bootstrapper.prepare(self.worker_id, to_bootstrap)
        except Exception as e:
            logger.error("[%s] Bootstrap for %r failed: %s", self.worker_id, scenario.name, e)
            return ScenarioResult(
                name=scenario.name,
                requirement=requirement,
                skipped=scenario.step_texts,
                duration_ms=Milliseconds.between(start, time.monotonic()).value,
                worker_id=self.worker_id,
                error=f"bootstrap failed: {type(e).__name__}: {e}",
            )

        if context is None:
            context = StepContext(worker_id=self.worker_id, scenario=scenario.name)
        if context.driver is None:
            context.driver = driver

        runner = ScenarioRunner(self.dispatcher, event_publisher=self.event_publisher)
        result = await runner.run(
            scenario, requirement=requirement, context=context, worker_id=self.worker_id,
        )
        self.scenarios_run += 1
        return result

    async def close(self) -> None:
        """Release every resource; safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        try:
            await self.bootstrapper.teardown(self.worker_id)
        finally:
            self.dispatcher.shutdown()
            self.detector.clear()
            self.healing_engine.clear()
            self.healing_history.clear()
            self.registry.clear()
            logger.debug("[%s] Worker context closed after %d scenarios",
                         self.worker_id, self.scenarios_run)
            if self.event_publisher is not None:
                self.event_publisher(WorkerClosed(
                    worker_id=self.worker_id, scenarios_run=self.scenarios_run,
                ))

    @property
    def closed(self) -> bool:
        return self._closed

    async def __aenter__(self) -> "WorkerExecutionContext":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
