"""Pydantic request, response and snapshot schemas."""
