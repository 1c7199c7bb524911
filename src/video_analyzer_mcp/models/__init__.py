"""Pydantic models for analysis results and workflow state."""
