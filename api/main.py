from contextlib import asynccontextmanager
from fastapi import FastAPI, Depends, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, Field
from typing import Dict, Any, List, Optional
from datetime import datetime, timezone
import logging
import threading
from uuid import uuid4

from langchain_core.messages import BaseMessage
from langgraph.graph.state import CompiledStateGraph

from agents.search_agent import SearchAgent
from config.logging_config import setup_logging
from config.settings import load_settings, missing_keys, require_keys
from exceptions import WorkflowException, APIError
from workflow.checkpoints import close_checkpointer, new_thread_id
from workflow.trip_workflow import (
    create_trip_workflow, stream_trip, resume_trip,
    get_trip_state, list_checkpoints, awaiting_selection
)

api_logger = logging.getLogger("api")

# Built on first use so the app can start without API keys
_search_agent: Optional[SearchAgent] = None
_trip_workflow: Optional[CompiledStateGraph] = None
_init_lock = threading.Lock()


@asynccontextmanager
async def lifespan(app: FastAPI):
    global _trip_workflow
    setup_logging(load_settings().log_level)
    api_logger.info("Trip Planner Agent API starting")
    yield
    with _init_lock:
        if _trip_workflow is not None:
            close_checkpointer(_trip_workflow.checkpointer)
            _trip_workflow = None
    api_logger.info("Trip Planner Agent API stopped")


app = FastAPI(
    title="Trip Planner Agent API",
    description="Search agent and checkpointed trip-planning workflow built on Langgraph",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:8000",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:8000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_search_agent() -> SearchAgent:
    global _search_agent
    if _search_agent is None:
        with _init_lock:
            if _search_agent is None:
                settings = load_settings()
                require_keys(settings)
                _search_agent = SearchAgent(settings=settings)
    return _search_agent


def get_trip_workflow() -> CompiledStateGraph:
    global _trip_workflow
    if _trip_workflow is None:
        with _init_lock:
            if _trip_workflow is None:
                settings = load_settings()
                require_keys(settings)
                _trip_workflow = create_trip_workflow(settings=settings)
    return _trip_workflow


class ErrorResponse(BaseModel):
    """Model for error responses."""
    error: str
    detail: Optional[str] = None
    timestamp: str
    request_id: str
    path: str

class AskRequest(BaseModel):
    """Request model for search agent questions."""
    question: str = Field(..., min_length=1)
    thread_id: Optional[str] = Field(default=None, description="Reuse a thread to continue a conversation")

class MessageRecord(BaseModel):
    type: str
    name: Optional[str] = None
    content: str

class AskResponse(BaseModel):
    thread_id: str
    messages: List[MessageRecord]

class TripRequest(BaseModel):
    """Request model for starting a trip plan."""
    destination: str = Field(..., min_length=1)

class SelectionRequest(BaseModel):
    """Hotel and flight chosen from the options found so far."""
    selected_hotel: Optional[str] = None
    selected_flight: Optional[str] = None

class TripResponse(BaseModel):
    thread_id: str
    state: Dict[str, Any]
    next: List[str]
    awaiting_selection: bool


def _error_response(request: Request, status_code: int, error: str, detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=error,
            detail=detail,
            timestamp=datetime.now(timezone.utc).isoformat(),
            request_id=str(uuid4()),
            path=request.url.path
        ).model_dump()
    )

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation errors."""
    return _error_response(request, status.HTTP_422_UNPROCESSABLE_ENTITY, "Validation Error", str(exc))

@app.exception_handler(WorkflowException)
async def workflow_exception_handler(request: Request, exc: WorkflowException):
    """Handle workflow-specific exceptions."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    if isinstance(exc, APIError):
        status_code = exc.status_code
    else:
        api_logger.error(f"Unhandled workflow error on {request.url.path}: {exc}", exc_info=True)
    return _error_response(request, status_code, exc.__class__.__name__, str(exc))


def _message_record(message: BaseMessage) -> MessageRecord:
    content = message.content if isinstance(message.content, str) else str(message.content)
    return MessageRecord(type=message.type, name=getattr(message, "name", None), content=content)


def _trip_response(workflow: CompiledStateGraph, thread_id: str) -> TripResponse:
    trip = get_trip_state(workflow, thread_id)
    return TripResponse(
        thread_id=thread_id,
        state=trip["values"],
        next=trip["next"],
        awaiting_selection=awaiting_selection(workflow, thread_id)
    )


@app.post("/ask", response_model=AskResponse)
def ask(request: AskRequest, agent: SearchAgent = Depends(get_search_agent)) -> AskResponse:
    """Ask the search agent a question, optionally continuing a thread."""
    thread_id = request.thread_id or new_thread_id()
    api_logger.info(f"Question on thread {thread_id}: {request.question}")
    messages = agent.ask(request.question, thread_id)
    return AskResponse(thread_id=thread_id, messages=[_message_record(m) for m in messages])

@app.post("/trips", response_model=TripResponse)
def start_trip(request: TripRequest, workflow: CompiledStateGraph = Depends(get_trip_workflow)) -> TripResponse:
    """Search flights and hotels for a destination, pausing for a selection."""
    thread_id = new_thread_id()
    api_logger.info(f"Starting trip to {request.destination} (Thread ID: {thread_id})")
    for _ in stream_trip(workflow, request.destination, thread_id):
        pass
    return _trip_response(workflow, thread_id)

@app.post("/trips/{thread_id}/resume", response_model=TripResponse)
def resume(thread_id: str, request: SelectionRequest, workflow: CompiledStateGraph = Depends(get_trip_workflow)) -> TripResponse:
    """Record the selection on a paused trip and generate the plan."""
    api_logger.info(f"Resuming trip on thread {thread_id}")
    for _ in resume_trip(workflow, thread_id, request.selected_hotel, request.selected_flight):
        pass
    return _trip_response(workflow, thread_id)

@app.get("/trips/{thread_id}", response_model=TripResponse)
def get_trip(thread_id: str, workflow: CompiledStateGraph = Depends(get_trip_workflow)) -> TripResponse:
    """Get the latest checkpointed state of a trip."""
    return _trip_response(workflow, thread_id)

@app.get("/trips/{thread_id}/checkpoints")
def get_checkpoints(thread_id: str, workflow: CompiledStateGraph = Depends(get_trip_workflow)) -> List[Dict[str, Any]]:
    """List the checkpoints saved for a trip, newest first."""
    return list_checkpoints(workflow, thread_id)

@app.get("/health")
async def health_check() -> Dict[str, Any]:
    """Health check endpoint."""
    settings = load_settings()
    missing = missing_keys(settings)
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": "1.0.0",
        "checkpoint_backend": settings.checkpoint_backend,
        "environment": {
            "openai_api_key": "OPENAI_API_KEY" not in missing,
            "tavily_api_key": "TAVILY_API_KEY" not in missing
        }
    }

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
