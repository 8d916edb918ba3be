"""Errors raised by the generation pipeline and its triggers.

Trigger-time errors (AdmissionDenied, InvalidTransition, ProjectNotFound,
PreconditionFailed) reach the caller synchronously. Run-time errors
(MalformedResult, TransportFailure, PersistenceFailure, and AdmissionDenied
raised before a later generation call) are caught at the orchestrator
boundary and turned into a reverted status plus an error event.
"""

from uuid import UUID

from src.blueprint.models.enums import ProjectStatus


class PipelineError(Exception):
    """Base class for pipeline errors."""


class AdmissionDenied(PipelineError):
    """The tenant's quota does not allow another generation call."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class InvalidTransition(PipelineError):
    """A status change outside the legal transition graph."""

    def __init__(self, current: ProjectStatus, requested: ProjectStatus):
        super().__init__(f"Cannot transition from {current.value} to {requested.value}")
        self.current = current
        self.requested = requested


class ProjectNotFound(PipelineError):
    def __init__(self, project_id: UUID):
        super().__init__(f"Project {project_id} not found")
        self.project_id = project_id


class PreconditionFailed(PipelineError):
    """The project exists but is not in a shape the trigger can work with."""


class MalformedResult(PipelineError):
    """The generated payload could not be parsed into the expected structure."""


class TransportFailure(PipelineError):
    """The generation provider could not be reached or returned an error."""


class PersistenceFailure(PipelineError):
    """The artifact store rejected or could not complete a write."""


class ScreenNotFound(PipelineError):
    def __init__(self, screen_id: UUID):
        super().__init__(f"Screen {screen_id} not found")
        self.screen_id = screen_id
