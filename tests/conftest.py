import logging

import pytest
from pydantic import Field

from langchain_core.language_models.fake_chat_models import GenericFakeChatModel
from langchain_core.tools import tool
from langgraph.checkpoint.memory import InMemorySaver

from config.settings import ENV_FIELDS, Settings


class FakeChatModel(GenericFakeChatModel):
    """Scripted chat model that records every prompt it receives."""
    received: list = Field(default_factory=list)

    def _generate(self, messages, stop=None, run_manager=None, **kwargs):
        self.received.append(list(messages))
        return super()._generate(messages, stop=stop, run_manager=run_manager, **kwargs)

    def bind_tools(self, tools, **kwargs):
        return self


class FailingChatModel(FakeChatModel):
    def _generate(self, messages, stop=None, run_manager=None, **kwargs):
        self.received.append(list(messages))
        raise RuntimeError("LLM unavailable")


class FakeTavilyClient:
    """Stands in for tavily.TavilyClient; fails `failures` times before answering."""
    instances = []

    def __init__(self, api_key=None, failures=0, error=None):
        self.api_key = api_key
        self.failures = failures
        self.error = error or ConnectionError("Tavily unreachable")
        self.calls = []
        FakeTavilyClient.instances.append(self)

    def search(self, query, max_results=5, **kwargs):
        self.calls.append({"query": query, "max_results": max_results})
        if len(self.calls) <= self.failures:
            raise self.error
        return {
            "query": query,
            "results": [
                {"title": f"Result {i} for {query}", "url": f"https://example.com/{i}", "content": f"Snippet {i}", "score": 0.9}
                for i in range(1, 7)
            ],
        }


def fake_llm(*responses):
    return FakeChatModel(messages=iter(responses))


@pytest.fixture
def make_llm():
    return fake_llm


@pytest.fixture
def search_calls():
    return []


@pytest.fixture
def fake_search_tool(search_calls):
    @tool
    def web_search(query: str) -> str:
        """Search the web."""
        search_calls.append(query)
        return '[{"title": "Tom Cruise", "url": "https://example.com/tom", "content": "American actor"}]'

    return web_search


@pytest.fixture
def settings():
    return Settings(openai_api_key="sk-test", tavily_api_key="tvly-test", flight_origin="Mumbai, India")


@pytest.fixture
def checkpointer():
    return InMemorySaver()


@pytest.fixture
def clean_env(monkeypatch):
    for env_name in ENV_FIELDS:
        # setenv first so anything a .env file adds is removed on teardown
        monkeypatch.setenv(env_name, "")
        monkeypatch.delenv(env_name)
    return monkeypatch


@pytest.fixture
def restore_loggers():
    yield
    for name in ("workflow", "agents", "api"):
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
        logger.propagate = True
        logger.setLevel(logging.NOTSET)
