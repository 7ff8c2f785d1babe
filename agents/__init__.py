"""
Agent building blocks.

Contains:
- build_llm: OpenAI chat model configured from the environment
- build_search_tool: Tavily-backed `web_search` tool
- SearchAgent: ReAct agent answering questions on checkpointed threads
"""
