import argparse
import sys
from typing import Any, Dict, List, Optional

from agents.search_agent import DEMO_QUESTIONS, SearchAgent
from config.logging_config import setup_logging
from config.settings import Settings, load_settings, missing_keys
from exceptions import WorkflowException
from workflow.checkpoints import close_checkpointer, new_thread_id
from workflow.trip_workflow import awaiting_selection, create_trip_workflow, resume_trip, stream_trip

SEPARATOR = "--------------------------"
INTERRUPTED = "=============== Interrupted ==============="


def print_state(chunk: Dict[str, Any]) -> None:
    print(SEPARATOR)
    for key, value in chunk.items():
        print(f"{key}: {value}")


def run_ask(questions: List[str], thread_id: str, settings: Settings) -> None:
    agent = SearchAgent(settings=settings)
    print(f"Thread id: {thread_id}")

    messages = []
    for question in questions:
        messages = agent.ask(question, thread_id)

    for message in messages:
        message.pretty_print()


def run_trip(destination: str, thread_id: str, settings: Settings) -> None:
    workflow = create_trip_workflow(settings=settings)
    print(f"Thread id: {thread_id}")

    try:
        for chunk in stream_trip(workflow, destination, thread_id):
            print_state(chunk)

        if awaiting_selection(workflow, thread_id):
            print(INTERRUPTED)
    finally:
        close_checkpointer(workflow.checkpointer)


def run_resume(thread_id: str, hotel: Optional[str], flight: Optional[str], settings: Settings) -> None:
    workflow = create_trip_workflow(settings=settings)
    print(f"Thread id: {thread_id}")

    try:
        for chunk in resume_trip(workflow, thread_id, selected_hotel=hotel, selected_flight=flight):
            print_state(chunk)
    finally:
        close_checkpointer(workflow.checkpointer)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Search agent and trip planner built on Langgraph")
    subparsers = parser.add_subparsers(dest="command", required=True)

    ask_parser = subparsers.add_parser("ask", help="Ask the search agent questions on one thread")
    ask_parser.add_argument("questions", nargs="*", help="Questions to ask in order (defaults to a demo conversation)")
    ask_parser.add_argument("--thread-id", help="Thread to continue")

    trip_parser = subparsers.add_parser("trip", help="Find flights and hotels, then pause for a selection")
    trip_parser.add_argument("destination")
    trip_parser.add_argument("--thread-id", help="Thread to run on (a new one by default)")

    resume_parser = subparsers.add_parser("resume", help="Finish a paused trip plan")
    resume_parser.add_argument("thread_id")
    resume_parser.add_argument("--hotel", help="Selected hotel")
    resume_parser.add_argument("--flight", help="Selected flight")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings()
    except WorkflowException as e:
        print(f"Error: {e}")
        return 1

    # Verify required API keys
    missing = missing_keys(settings)
    if missing:
        print(f"Error: Missing required API keys: {', '.join(missing)}")
        print("Please set them in your .env file")
        return 1

    setup_logging(settings.log_level)

    try:
        if args.command == "ask":
            questions = args.questions or list(DEMO_QUESTIONS)
            run_ask(questions, args.thread_id or settings.default_thread_id, settings)
        elif args.command == "trip":
            run_trip(args.destination, args.thread_id or new_thread_id(), settings)
        elif args.command == "resume":
            run_resume(args.thread_id, args.hotel, args.flight, settings)
    except WorkflowException as e:
        print(f"\nError occurred: {e}")
        return 1

    return 0

if __name__ == "__main__":
    sys.exit(main())
