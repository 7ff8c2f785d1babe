"""Custom exceptions for the search agent and trip workflow."""

class WorkflowException(Exception):
    """Base exception for workflow-related errors."""
    pass

class ConfigurationError(WorkflowException):
    """Raised when environment configuration is missing or invalid."""
    pass

class LLMInitializationError(WorkflowException):
    """Raised when the chat model cannot be constructed."""
    pass

class SearchError(WorkflowException):
    """Raised when a web search fails."""
    def __init__(self, query: str, error: str):
        self.query = query
        self.error = error
        super().__init__(f"Search for '{query}' failed: {error}")

class AgentInvocationError(WorkflowException):
    """Raised when a ReAct agent invocation fails."""
    def __init__(self, agent_name: str, error: str):
        self.agent_name = agent_name
        self.error = error
        super().__init__(f"Agent {agent_name} failed: {error}")

class TripPlanningError(WorkflowException):
    """Raised when the trip workflow cannot perform the requested step."""
    pass

class APIError(WorkflowException):
    """Base exception for API-related errors."""
    def __init__(self, message: str, status_code: int = 500):
        self.status_code = status_code
        super().__init__(message)

class ThreadNotFoundError(APIError, TripPlanningError):
    """Raised when no checkpointed state exists for a thread."""
    def __init__(self, thread_id: str):
        self.thread_id = thread_id
        super().__init__(
            message=f"Thread {thread_id} not found",
            status_code=404
        )

class InvalidRequestError(APIError):
    """Raised when the request is invalid."""
    def __init__(self, message: str):
        super().__init__(
            message=message,
            status_code=400
        )

class ThreadStateConflictError(APIError, TripPlanningError):
    """Raised when a thread is not in the state the action requires."""
    def __init__(self, message: str):
        super().__init__(
            message=message,
            status_code=409
        )
