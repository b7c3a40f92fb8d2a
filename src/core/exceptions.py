class ConfigError(Exception):
    """Raised when config loading or validation fails."""


class AgentUnavailable(Exception):
    """Raised when a step executor backend cannot be built or reached."""


class PlanningFailure(Exception):
    """Raised when the planner produces no executable steps."""


class WorkflowNotFound(KeyError):
    """Raised when a preset workflow id is not in the catalogue."""

    def __init__(self, workflow_id: str):
        super().__init__(workflow_id)
        self.workflow_id = workflow_id

    def __str__(self) -> str:
        return f"Workflow preset '{self.workflow_id}' not found"


class SessionNotFound(KeyError):
    """Raised when a stepwise session id is unknown."""

    def __init__(self, session_id: str):
        super().__init__(session_id)
        self.session_id = session_id

    def __str__(self) -> str:
        return f"No active plan session '{self.session_id}'"


class InvalidStepIndex(IndexError):
    """Raised when a step index is outside the active plan."""
