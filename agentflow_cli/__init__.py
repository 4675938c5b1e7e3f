"""Agentflow CLI - Validate, sign and ship agent workflow configurations."""

__version__ = "1.0.0"
