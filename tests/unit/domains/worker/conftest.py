"""Fixtures for worker tests."""
from typing import Any, List, Optional, Tuple

import pytest

from bddmcp.domains.module_detection import ModuleRequirement
from bddmcp.domains.step_registry import StepRegistry, StepSource


class RecordingBootstrapper:
    """SubsystemBootstrapper that records every call."""

    def __init__(self, driver: Any = None, fail_prepare: Optional[Exception] = None,
                 fail_teardown: Optional[Exception] = None):
        self.driver = driver
        self.fail_prepare = fail_prepare
        self.fail_teardown = fail_teardown
        self.prepared: List[Tuple[str, ModuleRequirement]] = []
        self.torn_down: List[str] = []

    async def prepare(self, worker_id, requirement):
        self.prepared.append((worker_id, requirement))
        if self.fail_prepare is not None:
            raise self.fail_prepare
        return self.driver

    async def teardown(self, worker_id):
        self.torn_down.append(worker_id)
        if self.fail_teardown is not None:
            raise self.fail_teardown


@pytest.fixture
def recording_bootstrapper():
    return RecordingBootstrapper


@pytest.fixture
def mixed_registry() -> StepRegistry:
    """Frozen-able registry with UI, API and database steps."""
    ui = StepSource("ui", group="ui")
    db = StepSource("db", group="database")
    api = StepSource("api", group="api")

    @ui.given("I open the {word} page")
    async def open_page(ctx, page):
        ctx["page"] = page
        ctx["driver_seen"] = ctx.driver

    @db.when("I execute query {word}")
    def run_query(ctx, name):
        ctx["query"] = name

    @api.when("I send a {word} request to {string}")
    async def send(ctx, method, path):
        ctx["request"] = (method, path)

    registry = StepRegistry()
    for source in (ui, db, api):
        source.register_into(registry)
    return registry
