from typing import Any, Dict, Iterator, List, Optional, TypedDict
import logging

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage
from langchain_core.prompts import ChatPromptTemplate
from langchain_core.tools import BaseTool
from langgraph.checkpoint.base import BaseCheckpointSaver
from langgraph.graph import StateGraph, START, END
from langgraph.graph.state import CompiledStateGraph
from langgraph.prebuilt import create_react_agent

from agents.llm import build_llm
from agents.search_tool import build_default_tools
from config.settings import Settings, load_settings
from exceptions import InvalidRequestError, ThreadNotFoundError, ThreadStateConflictError
from workflow.checkpoints import get_checkpointer, thread_config

logger = logging.getLogger("workflow")

FLIGHTS_NODE = "flights_finder"
HOTELS_NODE = "hotels_finder"
PLANNER_NODE = "trip_planner"

FLIGHTS_PROMPT = ChatPromptTemplate.from_template(
    "Please help find a list of flights for the user from {origin} to their choice of destination: {destination}. "
    "Include airlines, approximate prices and durations where available."
)

HOTELS_PROMPT = ChatPromptTemplate.from_template(
    "Please help find a list of hotels for the user based on their choice of destination: {destination}. "
    "Include the area, approximate nightly price and rating where available."
)

PLAN_PROMPT = ChatPromptTemplate.from_template(
    """Given the choice of destination: {destination}
Flight: {flight}
Hotel: {hotel}
Help plan a small trip."""
)


class TripState(TypedDict, total=False):
    """State threaded through the trip planning steps."""
    destination: str
    hotel_options: str
    flight_options: str
    selected_hotel: str
    selected_flight: str
    result: str
    error_message: str


def _message_text(message: BaseMessage) -> str:
    content = message.content
    if isinstance(content, str):
        return content
    # Content blocks: keep the text parts only
    parts = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


def create_trip_workflow(
    llm: Optional[BaseChatModel] = None,
    tools: Optional[List[BaseTool]] = None,
    checkpointer: Optional[BaseCheckpointSaver] = None,
    settings: Optional[Settings] = None,
    pause_for_selection: bool = True,
) -> CompiledStateGraph:
    logger.info("Creating trip workflow graph.")
    settings = settings or load_settings()
    llm = llm if llm is not None else build_llm(settings)
    tools = tools if tools is not None else build_default_tools(settings)
    checkpointer = checkpointer if checkpointer is not None else get_checkpointer(settings)
    origin = settings.flight_origin

    flights_agent = create_react_agent(llm, tools, name="flightsFinder")
    hotels_agent = create_react_agent(llm, tools, name="hotelsFinder")

    def flights_step(state: TripState) -> Dict[str, Any]:
        destination = (state.get("destination") or "").strip()
        if not destination:
            logger.error("Workflow: No destination provided. Skipping flight search.")
            return {"error_message": "No destination provided."}

        logger.info(f"Workflow: Searching flights from {origin} to {destination}")
        try:
            messages = FLIGHTS_PROMPT.format_messages(origin=origin, destination=destination)
            result = flights_agent.invoke({"messages": messages})
            flight_options = _message_text(result["messages"][-1])
        except Exception as e:
            logger.error(f"Workflow: Error during flight search: {e}", exc_info=True)
            return {"error_message": f"Flight search failed: {e}"}

        logger.info(f"Workflow: Flight search completed: {flight_options[:200]}...")
        return {"flight_options": flight_options}

    def hotels_step(state: TripState) -> Dict[str, Any]:
        if state.get("error_message"):
            logger.warning(f"Workflow: Error recorded ('{state['error_message']}'). Skipping hotel search.")
            return {}

        destination = state["destination"].strip()
        logger.info(f"Workflow: Searching hotels in {destination}")
        try:
            messages = HOTELS_PROMPT.format_messages(destination=destination)
            result = hotels_agent.invoke({"messages": messages})
            hotel_options = _message_text(result["messages"][-1])
        except Exception as e:
            logger.error(f"Workflow: Error during hotel search: {e}", exc_info=True)
            return {"error_message": f"Hotel search failed: {e}"}

        logger.info(f"Workflow: Hotel search completed: {hotel_options[:200]}...")
        return {"hotel_options": hotel_options}

    def plan_step(state: TripState) -> Dict[str, Any]:
        if state.get("error_message"):
            logger.error(f"Workflow: Trip plan reflects earlier error: {state['error_message']}")
            return {"result": state["error_message"]}

        flight = state.get("selected_flight") or (
            f"any suitable option from these flight options:\n{state.get('flight_options', '')}"
        )
        hotel = state.get("selected_hotel") or (
            f"any suitable option from these hotel options:\n{state.get('hotel_options', '')}"
        )
        logger.info(f"Workflow: Planning trip to {state['destination']}")
        try:
            messages = PLAN_PROMPT.format_messages(destination=state["destination"], flight=flight, hotel=hotel)
            response = llm.invoke(messages)
        except Exception as e:
            logger.error(f"Workflow: Error during trip planning: {e}", exc_info=True)
            return {"error_message": f"Trip planning failed: {e}", "result": f"Trip planning failed: {e}"}

        result = _message_text(response)
        logger.info(f"Workflow: Trip plan generated: {result[:200]}...")
        return {"result": result}

    workflow = StateGraph(TripState)

    workflow.add_node(FLIGHTS_NODE, flights_step)
    workflow.add_node(HOTELS_NODE, hotels_step)
    workflow.add_node(PLANNER_NODE, plan_step)

    workflow.add_edge(START, FLIGHTS_NODE)
    workflow.add_edge(FLIGHTS_NODE, HOTELS_NODE)
    workflow.add_edge(HOTELS_NODE, PLANNER_NODE)
    workflow.add_edge(PLANNER_NODE, END)

    interrupt_after = [HOTELS_NODE] if pause_for_selection else None
    logger.info("Trip workflow graph compiled.")
    return workflow.compile(checkpointer=checkpointer, interrupt_after=interrupt_after)


def _stream_values(workflow: CompiledStateGraph, graph_input: Optional[Dict[str, Any]], config: Dict[str, Any]) -> Iterator[Dict[str, Any]]:
    for chunk in workflow.stream(graph_input, config, stream_mode="values"):
        # Pauses surface as an interrupt marker, not as state
        if "__interrupt__" in chunk:
            continue
        yield chunk


def stream_trip(workflow: CompiledStateGraph, destination: str, thread_id: str) -> Iterator[Dict[str, Any]]:
    """Start a trip on a thread and yield the state after each step."""
    if not destination or not destination.strip():
        raise InvalidRequestError("Destination cannot be empty")
    logger.info(f"Running trip workflow for destination '{destination}' on thread {thread_id}")
    return _stream_values(workflow, {"destination": destination.strip()}, thread_config(thread_id))


def awaiting_selection(workflow: CompiledStateGraph, thread_id: str) -> bool:
    snapshot = workflow.get_state(thread_config(thread_id))
    return tuple(snapshot.next) == (PLANNER_NODE,)


def resume_trip(
    workflow: CompiledStateGraph,
    thread_id: str,
    selected_hotel: Optional[str] = None,
    selected_flight: Optional[str] = None,
) -> Iterator[Dict[str, Any]]:
    """Record the chosen hotel and flight on a paused thread and finish the plan."""
    config = thread_config(thread_id)
    snapshot = workflow.get_state(config)
    if not snapshot.values:
        raise ThreadNotFoundError(thread_id)
    if tuple(snapshot.next) != (PLANNER_NODE,):
        raise ThreadStateConflictError(f"Thread {thread_id} is not waiting for a hotel and flight selection")

    updates = {}
    if selected_hotel:
        updates["selected_hotel"] = selected_hotel
    if selected_flight:
        updates["selected_flight"] = selected_flight
    if updates:
        logger.info(f"Recording selections on thread {thread_id}: {updates}")
        workflow.update_state(config, updates, as_node=HOTELS_NODE)

    logger.info(f"Resuming trip workflow on thread {thread_id}")
    return _stream_values(workflow, None, config)


def get_trip_state(workflow: CompiledStateGraph, thread_id: str) -> Dict[str, Any]:
    snapshot = workflow.get_state(thread_config(thread_id))
    if not snapshot.values:
        raise ThreadNotFoundError(thread_id)
    return {
        "values": dict(snapshot.values),
        "next": list(snapshot.next),
        "checkpoint_id": snapshot.config["configurable"].get("checkpoint_id"),
    }


def list_checkpoints(workflow: CompiledStateGraph, thread_id: str) -> List[Dict[str, Any]]:
    """Checkpoints saved for a thread, newest first."""
    checkpoints = []
    for snapshot in workflow.get_state_history(thread_config(thread_id)):
        metadata = snapshot.metadata or {}
        checkpoints.append({
            "checkpoint_id": snapshot.config["configurable"].get("checkpoint_id"),
            "step": metadata.get("step"),
            "source": metadata.get("source"),
            "next": list(snapshot.next),
            "created_at": snapshot.created_at,
        })
    if not checkpoints:
        raise ThreadNotFoundError(thread_id)
    return checkpoints
