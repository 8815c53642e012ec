"""Exception hierarchy for hiveflow."""

from __future__ import annotations


class HiveflowError(Exception):
    """Base class for all hiveflow errors."""


class ConfigError(HiveflowError):
    """Raised when `.hiveflow.yml` holds invalid values."""


class BacklogError(HiveflowError):
    """Raised when a backlog file cannot be turned into work items."""


class WorkflowError(HiveflowError):
    """An unrecoverable workflow error. Aborts the run."""


class WorkflowDefinitionError(WorkflowError):
    """A phase has no node or no transition."""


class MissingArtifactError(WorkflowError):
    """A phase ran without the artifact it is built from."""

    def __init__(self, phase: str, missing: str) -> None:
        self.phase = phase
        self.missing = missing
        super().__init__(f"Phase '{phase}' requires the {missing} artifact, which has not been produced")


class PhaseFailedError(WorkflowError):
    """A content-producing phase could not generate its artifact."""


class GenerationError(HiveflowError):
    """The content-generation service failed for one unit of work."""


class GenerationCancelled(GenerationError):
    """The shared cancellation signal fired while a call was in flight."""
