import json
import logging
from typing import Any, Dict, List, Optional

import requests
from langchain_core.tools import BaseTool, tool
from tavily import TavilyClient
from tavily.errors import TimeoutError as TavilyTimeoutError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential, RetryError

from config.settings import Settings, load_settings
from exceptions import ConfigurationError, SearchError

logger = logging.getLogger("agents")


# Network failures worth retrying; auth, quota and bad-request errors fail at once
TRANSIENT_ERRORS = (
    ConnectionError,
    TimeoutError,
    TavilyTimeoutError,
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
)


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_exception_type(TRANSIENT_ERRORS)
)
def _run_search(client: TavilyClient, query: str, max_results: int) -> Dict[str, Any]:
    logger.debug(f"Sending search request to Tavily: '{query}'")
    return client.search(query=query, max_results=max_results)


def _format_results(response: Dict[str, Any], max_results: int) -> List[Dict[str, str]]:
    hits = []
    for item in (response or {}).get("results", [])[:max_results]:
        hits.append({
            "title": item.get("title", ""),
            "url": item.get("url", ""),
            "content": item.get("content", ""),
        })
    return hits


def build_search_tool(api_key: str, max_results: int = 4) -> BaseTool:
    """Return the `web_search` tool backed by a Tavily client."""
    if not api_key:
        logger.error("TAVILY_API_KEY environment variable is not set")
        raise ConfigurationError("TAVILY_API_KEY environment variable is not set")

    client = TavilyClient(api_key=api_key)
    logger.info(f"Search tool initialized (max_results={max_results})")

    @tool
    def web_search(query: str) -> str:
        """Search the web for up-to-date information such as flights, hotels, people and news."""
        if not query or not query.strip():
            raise SearchError(query=query, error="Query cannot be empty")

        logger.info(f"Performing web search for query: '{query}'")
        try:
            response = _run_search(client, query, max_results)
        except RetryError as e:
            cause = e.last_attempt.exception()
            logger.error(f"Search for '{query}' failed after multiple retries: {cause}", exc_info=True)
            raise SearchError(query=query, error=f"failed after multiple retries: {cause}") from e
        except Exception as e:
            logger.error(f"Search for '{query}' failed: {e}", exc_info=True)
            raise SearchError(query=query, error=str(e)) from e

        hits = _format_results(response, max_results)
        logger.info(f"Search completed. Found {len(hits)} results.")
        return json.dumps(hits)

    return web_search


def build_default_tools(settings: Optional[Settings] = None) -> List[BaseTool]:
    settings = settings or load_settings()
    return [build_search_tool(settings.tavily_api_key, settings.search_max_results)]
