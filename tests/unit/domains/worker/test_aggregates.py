"""Tests for WorkerExecutionContext."""
import pytest

from bddmcp.domains.module_detection import ModuleRequirement, ScenarioDescriptor
from bddmcp.domains.worker import WorkerClosed, WorkerIsolationManager
from bddmcp.models.config_models import EngineConfig


def _manager(registry, bootstrapper=None, events=None, **config):
    return WorkerIsolationManager(
        registry, EngineConfig.from_dict(config), bootstrapper=bootstrapper,
        event_publisher=events.append if events is not None else None,
    )


class TestRunScenario:
    @pytest.mark.asyncio
    async def test_database_scenario_does_not_bootstrap_ui(self, mixed_registry, recording_bootstrapper):
        bootstrapper = recording_bootstrapper()
        manager = _manager(mixed_registry, bootstrapper, MODULE_DETECTION_MODE="explicit")
        scenario = ScenarioDescriptor(
            name="report query", tags=["@database"], step_texts=["When I execute query X"],
        )
        async with manager.create_context("w1") as worker:
            result = await worker.run_scenario(scenario)

        assert result.passed
        assert result.requirement == ModuleRequirement(database=True)
        assert bootstrapper.prepared == [("w1", ModuleRequirement(database=True))]

    @pytest.mark.asyncio
    async def test_browser_always_bootstraps_ui_without_changing_detection(
        self, mixed_registry, recording_bootstrapper,
    ):
        bootstrapper = recording_bootstrapper()
        manager = _manager(mixed_registry, bootstrapper, BROWSER_ALWAYS_LAUNCH=True)
        scenario = ScenarioDescriptor(tags=["@api"], step_texts=['When I send a GET request to "/health"'])
        async with manager.create_context() as worker:
            result = await worker.run_scenario(scenario)
        assert result.requirement == ModuleRequirement(api=True)
        assert bootstrapper.prepared[0][1] == ModuleRequirement(ui=True, api=True)

    @pytest.mark.asyncio
    async def test_driver_from_bootstrap_reaches_handlers(self, mixed_registry, recording_bootstrapper):
        from bddmcp.domains.execution import StepContext

        driver = object()
        manager = _manager(mixed_registry, recording_bootstrapper(driver=driver))
        ctx = StepContext()
        async with manager.create_context() as worker:
            await worker.run_scenario(
                ScenarioDescriptor(step_texts=["Given I open the login page"]), context=ctx,
            )
        assert ctx["driver_seen"] is driver

    @pytest.mark.asyncio
    async def test_bootstrap_failure_skips_all_steps(self, mixed_registry, recording_bootstrapper):
        bootstrapper = recording_bootstrapper(fail_prepare=ConnectionError("db down"))
        manager = _manager(mixed_registry, bootstrapper)
        scenario = ScenarioDescriptor(tags=["@db"], step_texts=["When I execute query X"])
        async with manager.create_context() as worker:
            result = await worker.run_scenario(scenario)
        assert not result.passed
        assert result.steps == ()
        assert result.skipped == ("When I execute query X",)
        assert "db down" in result.error

    @pytest.mark.asyncio
    async def test_closed_context_refuses_work(self, mixed_registry):
        worker = _manager(mixed_registry).create_context()
        await worker.close()
        with pytest.raises(RuntimeError, match="closed"):
            await worker.run_scenario(ScenarioDescriptor(step_texts=["Given I open the x page"]))


class TestClose:
    @pytest.mark.asyncio
    async def test_close_clears_everything(self, mixed_registry):
        events = []
        worker = _manager(mixed_registry, events=events).create_context("w9")
        worker.detect(ScenarioDescriptor(tags=["@api"]))
        worker.healing_history.record_heal("#a", "#b", "alternative_locators", 0.8)

        await worker.close()

        assert worker.closed
        assert worker.detector.cache_size == 0
        assert worker.healing_engine.strategy_count == 0
        assert len(worker.healing_history) == 0
        assert len(worker.registry) == 0
        assert len(mixed_registry) == 3
        assert isinstance(events[-1], WorkerClosed)

    @pytest.mark.asyncio
    async def test_close_shuts_down_handler_executor(self, mixed_registry):
        worker = _manager(mixed_registry).create_context("w3")
        result = await worker.run_scenario(
            ScenarioDescriptor(step_texts=["When I execute query X"]),
        )
        assert result.passed
        executor = worker.dispatcher.executor
        assert executor is not None

        await worker.close()

        with pytest.raises(RuntimeError):
            executor.submit(lambda: None)

    @pytest.mark.asyncio
    async def test_close_clears_even_when_teardown_fails(self, mixed_registry, recording_bootstrapper):
        bootstrapper = recording_bootstrapper(fail_teardown=RuntimeError("browser hung"))
        worker = _manager(mixed_registry, bootstrapper).create_context()
        with pytest.raises(RuntimeError, match="browser hung"):
            await worker.close()
        assert worker.healing_engine.strategy_count == 0
        assert len(worker.registry) == 0

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, mixed_registry, recording_bootstrapper):
        bootstrapper = recording_bootstrapper()
        worker = _manager(mixed_registry, bootstrapper).create_context("w1")
        await worker.close()
        await worker.close()
        assert bootstrapper.torn_down == ["w1"]
