import sqlite3

import pytest
from langgraph.checkpoint.memory import InMemorySaver
from langgraph.checkpoint.sqlite import SqliteSaver

from config.settings import Settings
from exceptions import InvalidRequestError, ThreadNotFoundError, ThreadStateConflictError
from workflow.checkpoints import close_checkpointer, get_checkpointer, new_thread_id, thread_config
from workflow.trip_workflow import (
    awaiting_selection, create_trip_workflow, get_trip_state,
    list_checkpoints, resume_trip, stream_trip
)

from conftest import FailingChatModel

FLIGHTS = "1. Emirates EK501 BOM-DXB, 3h10m, about $250"
HOTELS = "1. Hilton Dubai Al Habtoor City, Sheikh Zayed Road, about $180/night"
PLAN = "Day 1: arrive on EK501 and check in at the Hilton."


@pytest.fixture
def llm(make_llm):
    return make_llm(FLIGHTS, HOTELS, PLAN)


@pytest.fixture
def workflow(llm, settings, checkpointer):
    return create_trip_workflow(llm=llm, tools=[], checkpointer=checkpointer, settings=settings)


def test_pauses_after_hotel_search(workflow, llm):
    """Test the run stops for a selection once flights and hotels are found."""
    chunks = list(stream_trip(workflow, "Dubai", "trip-1"))

    assert chunks[0] == {"destination": "Dubai"}
    final = chunks[-1]
    assert final["flight_options"] == FLIGHTS
    assert final["hotel_options"] == HOTELS
    assert "result" not in final
    assert awaiting_selection(workflow, "trip-1")
    assert get_trip_state(workflow, "trip-1")["next"] == ["trip_planner"]

    # Flights are looked up from the configured origin
    flights_prompt = llm.received[0][0].content
    assert "Mumbai, India" in flights_prompt
    assert "Dubai" in flights_prompt
    assert len(llm.received) == 2


def test_resume_with_selection(workflow, llm):
    """Test the planner receives the chosen flight and hotel."""
    list(stream_trip(workflow, "Dubai", "trip-1"))

    chunks = list(resume_trip(
        workflow, "trip-1",
        selected_hotel="Hilton Dubai Al Habtoor City",
        selected_flight="Emirates EK501",
    ))

    final = chunks[-1]
    assert final["result"] == PLAN
    assert final["selected_hotel"] == "Hilton Dubai Al Habtoor City"
    assert final["selected_flight"] == "Emirates EK501"

    plan_prompt = llm.received[-1][0].content
    assert "destination: Dubai" in plan_prompt
    assert "Hilton Dubai Al Habtoor City" in plan_prompt
    assert "Emirates EK501" in plan_prompt

    state = get_trip_state(workflow, "trip-1")
    assert state["next"] == []
    assert not awaiting_selection(workflow, "trip-1")


def test_resume_without_selection_uses_options(workflow, llm):
    list(stream_trip(workflow, "Dubai", "trip-1"))

    final = list(resume_trip(workflow, "trip-1"))[-1]

    assert final["result"] == PLAN
    plan_prompt = llm.received[-1][0].content
    assert "any suitable option from these flight options" in plan_prompt
    assert FLIGHTS in plan_prompt
    assert HOTELS in plan_prompt


def test_resume_requires_paused_thread(workflow):
    with pytest.raises(ThreadNotFoundError):
        resume_trip(workflow, "unknown-thread")

    list(stream_trip(workflow, "Dubai", "trip-1"))
    list(resume_trip(workflow, "trip-1", selected_hotel="Hilton"))

    with pytest.raises(ThreadStateConflictError):
        resume_trip(workflow, "trip-1", selected_hotel="Hilton")


def test_empty_destination_rejected(workflow):
    with pytest.raises(InvalidRequestError):
        stream_trip(workflow, "  ", "trip-1")


def test_flight_search_failure_is_recorded(settings, checkpointer):
    """Test a failing search is recorded and later steps skip their work."""
    llm = FailingChatModel(messages=iter([]))
    workflow = create_trip_workflow(llm=llm, tools=[], checkpointer=checkpointer, settings=settings)

    final = list(stream_trip(workflow, "Dubai", "trip-1"))[-1]

    assert final["error_message"].startswith("Flight search failed")
    assert "hotel_options" not in final
    # Only the flights agent reached the model
    assert len(llm.received) == 1

    final = list(resume_trip(workflow, "trip-1"))[-1]
    assert final["result"] == final["error_message"]


def test_runs_to_completion_without_pause(llm, settings, checkpointer):
    workflow = create_trip_workflow(llm=llm, tools=[], checkpointer=checkpointer, settings=settings, pause_for_selection=False)

    final = list(stream_trip(workflow, "Dubai", "trip-1"))[-1]

    assert final["result"] == PLAN
    assert not awaiting_selection(workflow, "trip-1")


def test_list_checkpoints(workflow):
    """Test checkpoints are listed newest first for a thread."""
    list(stream_trip(workflow, "Dubai", "trip-1"))

    checkpoints = list_checkpoints(workflow, "trip-1")

    assert len(checkpoints) >= 3
    assert checkpoints[0]["next"] == ["trip_planner"]
    steps = [c["step"] for c in checkpoints]
    assert steps == sorted(steps, reverse=True)
    assert all(c["checkpoint_id"] for c in checkpoints)
    assert checkpoints[0]["checkpoint_id"] == get_trip_state(workflow, "trip-1")["checkpoint_id"]

    with pytest.raises(ThreadNotFoundError):
        list_checkpoints(workflow, "unknown-thread")


def test_paused_trip_survives_restart(make_llm, settings, tmp_path):
    """Test a trip paused with the SQLite store can be resumed by a new workflow."""
    sqlite_settings = settings.model_copy(update={
        "checkpoint_backend": "sqlite",
        "checkpoint_path": str(tmp_path / "state" / "checkpoints.sqlite"),
    })
    thread_id = new_thread_id()

    first = create_trip_workflow(llm=make_llm(FLIGHTS, HOTELS), tools=[], checkpointer=get_checkpointer(sqlite_settings), settings=sqlite_settings)
    list(stream_trip(first, "Dubai", thread_id))
    close_checkpointer(first.checkpointer)

    second = create_trip_workflow(llm=make_llm(PLAN), tools=[], checkpointer=get_checkpointer(sqlite_settings), settings=sqlite_settings)
    assert awaiting_selection(second, thread_id)

    final = list(resume_trip(second, thread_id, selected_hotel="Hilton"))[-1]
    assert final["flight_options"] == FLIGHTS
    assert final["result"] == PLAN


def test_checkpoint_backends(tmp_path):
    assert isinstance(get_checkpointer(Settings()), InMemorySaver)
    sqlite_settings = Settings(checkpoint_backend="sqlite", checkpoint_path=str(tmp_path / "cp.sqlite"))
    assert isinstance(get_checkpointer(sqlite_settings), SqliteSaver)


def test_close_checkpointer(tmp_path):
    """Test closing releases the SQLite connection and ignores the memory store."""
    saver = get_checkpointer(Settings(checkpoint_backend="sqlite", checkpoint_path=str(tmp_path / "cp.sqlite")))
    close_checkpointer(saver)
    with pytest.raises(sqlite3.ProgrammingError):
        saver.conn.execute("SELECT 1")

    close_checkpointer(InMemorySaver())
    close_checkpointer(None)


def test_thread_ids():
    assert new_thread_id() != new_thread_id()
    assert thread_config("123-abc") == {"configurable": {"thread_id": "123-abc"}}

if __name__ == "__main__":
    pytest.main([__file__])
