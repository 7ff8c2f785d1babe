"""
Trip planning workflow using Langgraph.

flights_finder -> hotels_finder -> (pause for selection) -> trip_planner,
with state checkpointed per thread id.
"""
