"""Marketplace exceptions.

Every error carries the ``code`` and ``status_code`` the API error handler
turns into a ``{code, message}`` response, so services raise these directly
and never build HTTP responses themselves.
"""

from typing import Optional


class MarketplaceError(Exception):
    """Root of the marketplace error hierarchy.

    Attributes:
        message: Text shown to the caller
        code: Stable snake_case identifier, e.g. ``agent_not_found``
        status_code: HTTP status the API answers with
    """

    def __init__(self, message: str, code: str, status_code: int) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code


class AgentNotFoundError(MarketplaceError):
    """No agent is registered under the requested id."""

    def __init__(self, agent_id: str) -> None:
        super().__init__(
            message=f"No agent found with ID: {agent_id}",
            code="agent_not_found",
            status_code=404,
        )
        self.agent_id = agent_id


class ExecutionNotFoundError(MarketplaceError):
    """The execution does not exist or belongs to another user."""

    def __init__(self, execution_id: str, user_id: Optional[str] = None) -> None:
        owner = f" for user '{user_id}'" if user_id else ""
        super().__init__(
            message=f"Execution '{execution_id}' not found{owner}",
            code="execution_not_found",
            status_code=404,
        )
        self.execution_id = execution_id
        self.user_id = user_id


class InputValidationError(MarketplaceError):
    """User inputs do not satisfy an agent's input schema.

    The individual violations are kept in ``errors`` so callers can
    render them next to the offending form fields.
    """

    def __init__(self, errors: list[str]) -> None:
        super().__init__(
            message=f"Input validation failed: {', '.join(errors)}",
            code="input_validation_failed",
            status_code=400,
        )
        self.errors = errors


class AgentRegistrationError(MarketplaceError):
    """An agent definition was rejected at registration time."""

    def __init__(self, message: str) -> None:
        super().__init__(message=message, code="invalid_agent_definition", status_code=400)


class ExecutionStateError(MarketplaceError):
    """A second transition was attempted on a finished execution.

    Executions move from ``running`` to ``completed`` or ``failed`` exactly
    once. Losing a concurrent completion race also ends up here.
    """

    def __init__(self, execution_id: str, current_state: str, operation: str) -> None:
        super().__init__(
            message=(
                f"Cannot {operation} execution '{execution_id}': "
                f"it is already {current_state}"
            ),
            code="execution_state_error",
            status_code=409,
        )
        self.execution_id = execution_id
        self.current_state = current_state
        self.operation = operation
