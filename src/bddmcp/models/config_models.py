"""Configuration data models."""

import logging
import os
from dataclasses import dataclass, fields
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError

from bddmcp.domains.module_detection import DetectionPolicy, parse_module_list
from bddmcp.domains.shared.kernel import normalize_selector

logger = logging.getLogger(__name__)

ENV_PREFIX = "BDDMCP_"
_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off", ""}


@dataclass
class EngineConfig:
    """Centralized configuration for the execution engine.

    Values are supplied by an external loader (``from_dict``) or read
    from ``BDDMCP_<KEY>`` environment variables (``from_env``).
    """

    # Module detection
    MODULE_DETECTION_ENABLED: bool = True
    MODULE_DETECTION_MODE: str = "hybrid"  # auto | explicit | hybrid
    MODULE_DETECTION_DEFAULT_BROWSER: bool = True
    MODULE_DETECTION_LOGGING: bool = False
    BROWSER_ALWAYS_LAUNCH: bool = False
    MODULES: str = ""  # explicit override, e.g. "api,database"

    # Step loading
    STEP_LOADING_STRATEGY: str = "all"  # all | selective

    # Healing
    HEALING_ENABLED: bool = True
    MAX_HEALING_ATTEMPTS: int = 3
    CONFIDENCE_THRESHOLD: float = 0.5
    HEALING_ATTEMPT_TIMEOUT: int = 10000  # milliseconds, 0 disables
    HEALING_TIME_BUDGET: int = 30000  # milliseconds, 0 disables
    HEALING_HISTORY_SIZE: int = 10  # remembered heals per locator

    # Execution
    DEFAULT_STEP_TIMEOUT: int = 30000  # milliseconds
    WORKERS: int = 1

    @classmethod
    def from_dict(cls, config: Dict) -> 'EngineConfig':
        """Create configuration from dictionary."""
        instance = cls()
        for key, value in config.items():
            if hasattr(instance, key):
                setattr(instance, key, instance._coerce(key, value))
        return instance

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'EngineConfig':
        """Create configuration from ``BDDMCP_*`` environment variables."""
        environ = os.environ if environ is None else environ
        values = {}
        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name)
            if raw is not None:
                values[f.name] = raw
        return cls.from_dict(values)

    def to_dict(self) -> Dict:
        """Convert configuration to dictionary."""
        return {
            key: value for key, value in self.__dict__.items()
            if not key.startswith('_')
        }

    def update(self, **kwargs) -> None:
        """Update configuration values."""
        for key, value in kwargs.items():
            if hasattr(self, key):
                setattr(self, key, self._coerce(key, value))
            else:
                raise ValueError(f"Unknown configuration key: {key}")

    def validate(self) -> List[str]:
        """Validate configuration values and return any errors."""
        errors = []

        try:
            normalize_selector("detection_mode", self.MODULE_DETECTION_MODE)
        except ValidationError:
            errors.append("MODULE_DETECTION_MODE must be 'auto', 'explicit', or 'hybrid'")

        try:
            normalize_selector("step_loading_strategy", self.STEP_LOADING_STRATEGY)
        except ValidationError:
            errors.append("STEP_LOADING_STRATEGY must be 'all' or 'selective'")

        if self.MAX_HEALING_ATTEMPTS < 0:
            errors.append("MAX_HEALING_ATTEMPTS must not be negative")

        if not 0.0 <= self.CONFIDENCE_THRESHOLD <= 1.0:
            errors.append("CONFIDENCE_THRESHOLD must be between 0 and 1")

        if self.DEFAULT_STEP_TIMEOUT <= 0:
            errors.append("DEFAULT_STEP_TIMEOUT must be positive")

        if self.HEALING_ATTEMPT_TIMEOUT < 0:
            errors.append("HEALING_ATTEMPT_TIMEOUT must not be negative")

        if self.HEALING_TIME_BUDGET < 0:
            errors.append("HEALING_TIME_BUDGET must not be negative")

        if self.HEALING_HISTORY_SIZE <= 0:
            errors.append("HEALING_HISTORY_SIZE must be positive")

        if self.WORKERS <= 0:
            errors.append("WORKERS must be positive")

        return errors

    def detection_policy(self) -> DetectionPolicy:
        """Build the module detection policy from this configuration."""
        return DetectionPolicy(
            mode=normalize_selector("detection_mode", self.MODULE_DETECTION_MODE),
            enabled=self.MODULE_DETECTION_ENABLED,
            default_browser=self.MODULE_DETECTION_DEFAULT_BROWSER,
            browser_always=self.BROWSER_ALWAYS_LAUNCH,
            explicit_modules=parse_module_list(self.MODULES),
            log_detection=self.MODULE_DETECTION_LOGGING,
        )

    @property
    def step_loading_strategy(self) -> str:
        return normalize_selector("step_loading_strategy", self.STEP_LOADING_STRATEGY)

    def _coerce(self, key: str, value: Any) -> Any:
        """Convert string values (from env or CLI) to the field's type."""
        current = getattr(type(self), key, None)
        if not isinstance(value, str) or isinstance(current, str):
            return value
        text = value.strip().lower()
        if isinstance(current, bool):
            if text in _TRUTHY:
                return True
            if text in _FALSY:
                return False
            raise ValueError(f"{key} expects a boolean, got {value!r}")
        if isinstance(current, int):
            return int(text)
        if isinstance(current, float):
            return float(text)
        return value
