"""
Agent Workflow Core
===================

Core modules for authoring and distributing agent workflow configurations.

This package provides:
- The workflow graph model and its two-pass validator
- Human-readable rendering of validation issues
- HMAC-signed access to the orchestrator Admin API
- Agent configuration import, export and version activation
"""

__version__ = "1.0.0"
