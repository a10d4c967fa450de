"""Pydantic request/response and provider schemas."""
