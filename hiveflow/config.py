"""Configuration dataclasses and `.hiveflow.yml` loading."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Literal

from hiveflow.errors import ConfigError

ProjectType = Literal["greenfield", "brownfield"]

CONFIG_FILENAME = ".hiveflow.yml"


@dataclass
class GeneratorConfig:
    """Selects and parameterizes the content generator for one pipeline."""

    model: str = "claude-sonnet-4-6"
    api_base: str | None = None
    temperature: float = 0.0


@dataclass
class SwarmConfig:
    max_workers: int = 3
    max_cycles: int = 50
    max_rework_rounds: int = 3
    max_draft_attempts: int = 2
    recursion_limit: int = 1000

    def __post_init__(self) -> None:
        if self.max_workers < 1:
            raise ConfigError(f"max_workers must be at least 1, got {self.max_workers}")
        if self.max_cycles < 1:
            raise ConfigError(f"max_cycles must be at least 1, got {self.max_cycles}")
        if self.max_rework_rounds < 0:
            raise ConfigError(f"max_rework_rounds must not be negative, got {self.max_rework_rounds}")
        if self.max_draft_attempts < 1:
            raise ConfigError(f"max_draft_attempts must be at least 1, got {self.max_draft_attempts}")


@dataclass
class PlanningConfig:
    include_ux: bool = False
    project_type: ProjectType = "greenfield"
    # None = loop until the validator is satisfied
    max_validation_rounds: int | None = 3
    recursion_limit: int = 200

    def __post_init__(self) -> None:
        if self.project_type not in ("greenfield", "brownfield"):
            raise ConfigError(f"project_type must be 'greenfield' or 'brownfield', got {self.project_type!r}")
        if self.max_validation_rounds is not None and self.max_validation_rounds < 1:
            raise ConfigError(
                f"max_validation_rounds must be at least 1 or null, got {self.max_validation_rounds}"
            )


@dataclass
class HiveConfig:
    """Top-level configuration: one generator per pipeline plus pipeline knobs."""

    planning_model: GeneratorConfig = field(default_factory=lambda: GeneratorConfig(temperature=0.7))
    coding_model: GeneratorConfig = field(default_factory=lambda: GeneratorConfig(temperature=0.3))
    planning: PlanningConfig = field(default_factory=PlanningConfig)
    swarm: SwarmConfig = field(default_factory=SwarmConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HiveConfig:
        defaults = cls()
        return cls(
            planning_model=_build(data.get("planning_model"), "planning_model", defaults.planning_model),
            coding_model=_build(data.get("coding_model"), "coding_model", defaults.coding_model),
            planning=_build(data.get("planning"), "planning", defaults.planning),
            swarm=_build(data.get("swarm"), "swarm", defaults.swarm),
        )


def _build(section: Any, name: str, default: Any) -> Any:
    """Overlay a YAML section onto the default dataclass instance."""
    if section is None:
        return default
    if not isinstance(section, dict):
        raise ConfigError(f"'{name}' must be a mapping, got {type(section).__name__}")
    cls = type(default)
    allowed = {f.name for f in fields(cls)}
    unknown = sorted(set(section) - allowed)
    if unknown:
        raise ConfigError(f"Unknown key(s) in '{name}': {', '.join(unknown)}")
    merged = {**asdict(default), **section}
    return cls(**merged)


def load_config(cwd: str) -> HiveConfig:
    """Load `.hiveflow.yml` from *cwd*; defaults when the file is absent."""
    import yaml

    config_path = Path(cwd) / CONFIG_FILENAME
    if not config_path.exists():
        return HiveConfig()
    with config_path.open() as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Cannot parse {config_path}: {e}") from e
    if data is None:
        return HiveConfig()
    if not isinstance(data, dict):
        raise ConfigError(f"{config_path} must contain a mapping at the top level")
    return HiveConfig.from_dict(data)
