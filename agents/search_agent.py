import logging
from typing import List, Optional

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage, HumanMessage
from langchain_core.tools import BaseTool
from langgraph.checkpoint.base import BaseCheckpointSaver
from langgraph.checkpoint.memory import InMemorySaver
from langgraph.prebuilt import create_react_agent

from agents.llm import build_llm
from agents.search_tool import build_default_tools
from config.settings import Settings
from exceptions import AgentInvocationError, InvalidRequestError
from workflow.checkpoints import thread_config

logger = logging.getLogger("agents")

DEMO_QUESTIONS = ("Hi, who is Tom Cruise?", "did i ask about Tom?")


class SearchAgent:
    """ReAct agent with web search whose conversations are checkpointed per thread."""

    def __init__(
        self,
        llm: Optional[BaseChatModel] = None,
        tools: Optional[List[BaseTool]] = None,
        checkpointer: Optional[BaseCheckpointSaver] = None,
        settings: Optional[Settings] = None,
        name: str = "searchAgent",
    ):
        self.name = name
        self.llm = llm if llm is not None else build_llm(settings)
        self.tools = tools if tools is not None else build_default_tools(settings)
        self.checkpointer = checkpointer if checkpointer is not None else InMemorySaver()

        logger.info(f"Initializing {name} with tools: {[t.name for t in self.tools]}")
        self.agent = create_react_agent(
            self.llm,
            self.tools,
            name=name,
            checkpointer=self.checkpointer,
        )

    def ask(self, question: str, thread_id: str) -> List[BaseMessage]:
        """Send a question on a thread and return every message stored for it."""
        if not question or not question.strip():
            raise InvalidRequestError("Question cannot be empty")
        if not thread_id:
            raise InvalidRequestError("Thread id cannot be empty")

        logger.info(f"{self.name}: question on thread {thread_id}: '{question}'")
        try:
            result = self.agent.invoke(
                {"messages": [HumanMessage(content=question)]},
                thread_config(thread_id),
            )
        except Exception as e:
            logger.error(f"{self.name}: invocation failed on thread {thread_id}: {e}", exc_info=True)
            raise AgentInvocationError(agent_name=self.name, error=str(e)) from e

        messages = result.get("messages", [])
        logger.info(f"{self.name}: thread {thread_id} now holds {len(messages)} messages")
        return messages

    def history(self, thread_id: str) -> List[BaseMessage]:
        snapshot = self.agent.get_state(thread_config(thread_id))
        return list(snapshot.values.get("messages", []))
