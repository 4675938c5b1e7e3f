# Logging and shared infrastructure

from agentflow_core.core.logging import configure_logging, get_logger

__all__ = [
    "configure_logging",
    "get_logger",
]
