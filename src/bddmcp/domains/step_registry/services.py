"""Step Registry Services.

StepSource is the declaration surface step libraries use. Its
decorators only record declarations; nothing is registered until the
caller hands the source to a registry, so importing a step library has
no side effects on any registry.

Example:
    steps = StepSource("login", group=StepGroup.UI)

    @steps.given("I open the {word} page")
    async def open_page(ctx, page):
        ...

    steps.register_into(registry)
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional, Sequence

from bddmcp.domains.step_pattern import PatternCompiler

from .aggregates import StepRegistry
from .entities import RegistrationResult, StepDefinition
from .value_objects import KeywordClass, SourceLocation, StepGroup

logger = logging.getLogger(__name__)

Handler = Callable[..., Any]


@dataclass(frozen=True)
class StepDeclaration:
    """A recorded, not yet compiled, step declaration."""
    template: str
    keyword_class: KeywordClass
    handler: Handler
    timeout_ms: Optional[int] = None
    declared_at: Optional[SourceLocation] = None


class StepSource:
    """Collects step declarations for one step library.

    All decorator aliases record the same kind of declaration; they
    differ only in the keyword class kept as metadata.
    """

    def __init__(self, name: str = "steps", group: StepGroup = StepGroup.COMMON):
        self.name = name
        self.group = StepGroup(group)
        self._declarations: List[StepDeclaration] = []

    # ---- Decorator aliases ----

    def given(self, template: str, timeout_ms: Optional[int] = None):
        return self._declare(KeywordClass.GIVEN, template, timeout_ms)

    def when(self, template: str, timeout_ms: Optional[int] = None):
        return self._declare(KeywordClass.WHEN, template, timeout_ms)

    def then(self, template: str, timeout_ms: Optional[int] = None):
        return self._declare(KeywordClass.THEN, template, timeout_ms)

    def and_(self, template: str, timeout_ms: Optional[int] = None):
        return self._declare(KeywordClass.AND, template, timeout_ms)

    def but(self, template: str, timeout_ms: Optional[int] = None):
        return self._declare(KeywordClass.BUT, template, timeout_ms)

    def step(self, template: str, timeout_ms: Optional[int] = None):
        return self._declare(KeywordClass.GENERIC, template, timeout_ms)

    def step_def(self, pattern: str, timeout: Optional[int] = None):
        """Legacy form: ``@steps.step_def("pattern", timeout=5000)``."""
        return self._declare(KeywordClass.GENERIC, pattern, timeout)

    def add(
        self,
        template: str,
        handler: Handler,
        keyword_class: KeywordClass = KeywordClass.GENERIC,
        timeout_ms: Optional[int] = None,
    ) -> None:
        """Record a declaration without decorator syntax."""
        self._declarations.append(StepDeclaration(
            template=template,
            keyword_class=keyword_class,
            handler=handler,
            timeout_ms=timeout_ms,
            declared_at=SourceLocation.from_callable(handler),
        ))

    def _declare(self, keyword_class: KeywordClass, template: str,
                 timeout_ms: Optional[int]):
        def decorator(func: Handler) -> Handler:
            self.add(template, func, keyword_class, timeout_ms)
            return func
        return decorator

    # ---- Registration ----

    @property
    def declarations(self) -> Sequence[StepDeclaration]:
        return tuple(self._declarations)

    def build_definitions(
        self, compiler: Optional[PatternCompiler] = None,
    ) -> List[StepDefinition]:
        """Compile every declaration.

        Raises:
            PatternError: If a template is malformed.
        """
        compiler = compiler or PatternCompiler()
        return [
            StepDefinition(
                pattern=compiler.compile(d.template),
                keyword_class=d.keyword_class,
                handler=d.handler,
                timeout_ms=d.timeout_ms,
                declared_at=d.declared_at,
                group=self.group,
            )
            for d in self._declarations
        ]

    def register_into(
        self,
        registry: StepRegistry,
        compiler: Optional[PatternCompiler] = None,
    ) -> List[RegistrationResult]:
        """Register every declaration.

        Raises:
            PatternError: On a malformed template.
            AmbiguousStepError: On a conflicting definition.
        """
        results = [registry.register(d) for d in self.build_definitions(compiler)]
        logger.debug("Registered %d steps from source %r", len(results), self.name)
        return results

    def __len__(self) -> int:
        return len(self._declarations)

    def __repr__(self) -> str:
        return f"StepSource(name={self.name!r}, group={self.group.value!r}, steps={len(self)})"


class StepLoader:
    """Loads step sources into a registry.

    Strategies:
        all: every source is registered.
        selective: COMMON sources plus those whose group is one of the
            required modules.
    """

    def __init__(self, sources: Iterable[StepSource], strategy: str = "all",
                 compiler: Optional[PatternCompiler] = None):
        if strategy not in ("all", "selective"):
            raise ValueError(f"Unknown step loading strategy: {strategy!r}")
        self.sources = list(sources)
        self.strategy = strategy
        self.compiler = compiler or PatternCompiler()

    def select(self, modules: Iterable[str] = ()) -> List[StepSource]:
        if self.strategy == "all":
            return list(self.sources)
        wanted = {StepGroup.COMMON} | {StepGroup(m) for m in modules}
        return [s for s in self.sources if s.group in wanted]

    def load(self, registry: StepRegistry, modules: Iterable[str] = ()) -> int:
        """Register the selected sources; returns the number of steps added."""
        selected = self.select(modules)
        skipped = [s.name for s in self.sources if s not in selected]
        if skipped:
            logger.info("Selective step loading skipped sources: %s", ", ".join(skipped))
        count = 0
        for source in selected:
            count += len(source.register_into(registry, self.compiler))
        return count
