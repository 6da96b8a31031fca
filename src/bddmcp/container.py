"""Dependency Injection Container for the bddmcp bounded contexts.

Wires together:
- Step Pattern / Step Registry: step sources compiled into one registry
- Module Detection: detection policy from configuration
- Healing: strategy catalog
- Worker: isolated execution contexts for parallel runs

Usage:
    from bddmcp.container import get_container

    container = get_container()
    container.add_step_source(steps)
    results = await container.worker_manager.run_parallel(scenarios)
"""

from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, List, Optional, Sequence

from bddmcp.models.config_models import EngineConfig

if TYPE_CHECKING:
    from bddmcp.domains.healing import HealingEngine
    from bddmcp.domains.module_detection import ModuleDetector, ScenarioDescriptor
    from bddmcp.domains.step_pattern import PatternCompiler
    from bddmcp.domains.step_registry import StepRegistry, StepSource
    from bddmcp.domains.worker import SubsystemBootstrapper, WorkerIsolationManager

logger = logging.getLogger(__name__)

# Singleton container instance
_container: Optional["ServiceContainer"] = None


@dataclass
class ServiceContainer:
    """Simple dependency injection container for engine services.

    The step registry is built once, on first use, from the registered
    step sources and then frozen. Adding sources afterwards is an error.

    Attributes:
        config: Engine configuration.
        bootstrapper: Optional subsystem bootstrapper for workers.
    """

    config: EngineConfig = field(default_factory=EngineConfig.from_env)
    bootstrapper: Optional["SubsystemBootstrapper"] = None

    _step_sources: List["StepSource"] = field(default_factory=list, repr=False)
    _compiler: Optional["PatternCompiler"] = field(default=None, repr=False)
    _registry: Optional["StepRegistry"] = field(default=None, repr=False)
    _detector: Optional["ModuleDetector"] = field(default=None, repr=False)
    _worker_manager: Optional["WorkerIsolationManager"] = field(default=None, repr=False)

    @property
    def compiler(self) -> "PatternCompiler":
        """Get the pattern compiler."""
        if self._compiler is None:
            from bddmcp.domains.step_pattern import PatternCompiler
            self._compiler = PatternCompiler()
        return self._compiler

    @property
    def detector(self) -> "ModuleDetector":
        """Get the detector used outside of workers (tools, selective loading)."""
        if self._detector is None:
            from bddmcp.domains.module_detection import ModuleDetector
            self._detector = ModuleDetector()
        return self._detector

    @property
    def registry(self) -> "StepRegistry":
        """Get the frozen step registry, building it on first access."""
        if self._registry is None:
            self.build_registry()
        return self._registry

    @property
    def worker_manager(self) -> "WorkerIsolationManager":
        """Get the worker isolation manager."""
        if self._worker_manager is None:
            from bddmcp.domains.worker import WorkerIsolationManager
            self._worker_manager = WorkerIsolationManager(
                self.registry, self.config, bootstrapper=self.bootstrapper,
            )
        return self._worker_manager

    @property
    def step_sources(self) -> List["StepSource"]:
        return list(self._step_sources)

    def add_step_source(self, source: "StepSource") -> None:
        """Queue a step source for registration.

        Raises:
            RuntimeError: If the registry was already built.
        """
        if self._registry is not None:
            raise RuntimeError("Step registry already built; add step sources at startup")
        self._step_sources.append(source)

    def load_step_modules(self, module_names: Iterable[str]) -> int:
        """Import modules and queue every StepSource they define.

        Returns:
            Number of step sources found.
        """
        from bddmcp.domains.step_registry import StepSource

        found = 0
        for name in module_names:
            name = name.strip()
            if not name:
                continue
            module = importlib.import_module(name)
            for value in vars(module).values():
                if isinstance(value, StepSource) and value not in self._step_sources:
                    self.add_step_source(value)
                    found += 1
            logger.info("Loaded step module %s", name)
        return found

    def build_registry(
        self, scenarios: Sequence["ScenarioDescriptor"] = (),
    ) -> "StepRegistry":
        """Validate configuration and register every step source.

        Under the ``selective`` strategy only common sources and those
        for modules the given scenarios need are registered. Without
        scenarios the needed modules are unknown, so every source is
        registered.

        Raises:
            ValueError: If the configuration is invalid.
            RuntimeError: If the registry was already built.
            PatternError, AmbiguousStepError: From registration.
        """
        from bddmcp.domains.step_registry import StepLoader, StepRegistry

        if self._registry is not None:
            raise RuntimeError("Step registry already built")
        errors = self.config.validate()
        if errors:
            raise ValueError("Invalid engine configuration: " + "; ".join(errors))

        modules: List[str] = []
        if self.config.step_loading_strategy == "selective":
            if scenarios:
                requirement = self.detector.detect_all(scenarios, self.config.detection_policy())
                modules = [m.value for m in requirement.enabled_modules()]
            else:
                from bddmcp.domains.module_detection import Module
                modules = [m.value for m in Module]
                logger.info("Selective step loading without scenarios; loading every group")

        registry = StepRegistry()
        loader = StepLoader(
            self._step_sources, self.config.step_loading_strategy, compiler=self.compiler,
        )
        count = loader.load(registry, modules)
        registry.freeze()
        self._registry = registry
        logger.info("Step registry built with %d definitions from %d sources",
                    count, len(self._step_sources))
        return registry

    def create_healing_engine(self) -> "HealingEngine":
        """A fresh healing engine configured from this container."""
        from bddmcp.domains.healing import HealingEngine
        return HealingEngine.from_config(self.config)


def get_container() -> ServiceContainer:
    """Get the singleton service container.

    Returns:
        The shared ServiceContainer instance
    """
    global _container
    if _container is None:
        _container = ServiceContainer()
    return _container


def reset_container() -> None:
    """Reset the container (for testing).

    Clears the singleton instance so a fresh container is created
    on next get_container() call.
    """
    global _container
    _container = None
