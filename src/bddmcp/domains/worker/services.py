"""Worker Domain Services: subsystem bootstrap protocol."""
from __future__ import annotations

import logging
from typing import Any, Optional, Protocol, runtime_checkable

from bddmcp.domains.module_detection import ModuleRequirement

logger = logging.getLogger(__name__)


@runtime_checkable
class SubsystemBootstrapper(Protocol):
    """Anti-corruption layer over browser, HTTP, database and SOAP setup.

    ``prepare`` is called before each scenario with the modules it
    needs and may return a UiDriver for the healing strategies.
    ``teardown`` is called once when the worker closes.
    """

    async def prepare(self, worker_id: str, requirement: ModuleRequirement) -> Optional[Any]:
        ...

    async def teardown(self, worker_id: str) -> None:
        ...


class NullBootstrapper:
    """Default bootstrapper: initializes nothing."""

    async def prepare(self, worker_id: str, requirement: ModuleRequirement) -> Optional[Any]:
        logger.debug("[%s] No bootstrapper configured for modules: %s",
                     worker_id, requirement.summary)
        return None

    async def teardown(self, worker_id: str) -> None:
        return None
