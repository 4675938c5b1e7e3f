"""Shared pytest fixtures for testing."""

import copy
from typing import Any, AsyncGenerator, Dict

import pytest
import pytest_asyncio

from agentflow_core.admin.client import AdminAPIClient

BASE_URL = "https://engine.test"
API_KEY = "test-signing-key"


# =============================================================================
# Workflow Fixtures
# =============================================================================


MINIMAL_CONFIG: Dict[str, Any] = {
    "agent": {"name": "Test"},
    "workflow": {
        "initial_node": "greeting",
        "nodes": [
            {
                "id": "greeting",
                "type": "standard",
                "system_prompt": "Hi",
                "transitions": [{"condition": "always", "target": "bye"}],
            },
            {"id": "bye", "type": "end_call"},
        ],
    },
}


SUPPORT_CONFIG: Dict[str, Any] = {
    "agent": {"id": "agent_support", "name": "Support Agent", "tenant_id": "tenant_1"},
    "workflow": {
        "initial_node": "greeting",
        "global_prompt": "You are a helpful support agent.",
        "llm": {"enabled": True, "model_name": "gpt-4o-mini", "temperature": 0.4},
        "tts": {"enabled": True, "voice_name": "Rachel", "stability": 0.5},
        "nodes": [
            {
                "id": "greeting",
                "name": "Greeting",
                "type": "standard",
                "static_text": "Hello, how can I help?",
                "intents": {
                    "billing": {"description": "Billing question", "examples": ["my invoice"]},
                },
                "transitions": [
                    {"condition": "intent:billing", "target": "collect_account"},
                    {"condition": "intent:goodbye", "target": "farewell"},
                ],
            },
            {
                "id": "collect_account",
                "type": "retrieve_variable",
                "variable_name": "account_number",
                "extraction_prompt": "Extract the caller's account number",
                "transitions": [{"condition": "always", "target": "lookup"}],
            },
            {
                "id": "lookup",
                "type": "api_call",
                "api_call": {
                    "method": "GET",
                    "url": "https://billing.example.com/accounts/{{account_number}}",
                    "response_extraction": [{"path": "$.balance", "variable_name": "balance"}],
                },
                "transitions": [{"condition": "always", "target": "answer"}],
            },
            {
                "id": "answer",
                "type": "standard",
                "system_prompt": "Tell the caller their balance of {{balance}}.",
                "rag": {"enabled": True, "search_mode": "hybrid", "top_k": 5},
                "transitions": [{"condition": "intent:goodbye", "target": "farewell"}],
            },
            {
                "id": "escalate",
                "type": "agent_transfer",
                "target_agent_id": "agent_billing",
                "transfer_message": "Transferring you now.",
            },
            {"id": "farewell", "type": "end_call"},
        ],
        "global_intents": {
            "goodbye": {
                "description": "Caller wants to end the call",
                "examples": ["bye"],
                "target_node": "farewell",
            },
            "human": {
                "description": "Caller asks for a human",
                "target_node": "escalate",
                "excluded_from_nodes": ["farewell"],
            },
        },
        "post_call_analysis": {
            "enabled": True,
            "questions": [
                {"name": "resolved", "type": "boolean"},
                {
                    "name": "topic",
                    "type": "enum",
                    "choices": [{"value": "billing"}, {"value": "other"}],
                },
            ],
        },
    },
}


@pytest.fixture
def minimal_config() -> Dict[str, Any]:
    """Two-node greeting -> end_call workflow."""
    return copy.deepcopy(MINIMAL_CONFIG)


@pytest.fixture
def support_config() -> Dict[str, Any]:
    """Workflow using every node variant, intents and global intents."""
    return copy.deepcopy(SUPPORT_CONFIG)


# =============================================================================
# Admin API Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def admin_client() -> AsyncGenerator[AdminAPIClient, None]:
    """Configured Admin API client; requests are intercepted with respx."""
    client = AdminAPIClient(base_url=BASE_URL, api_key=API_KEY)
    yield client
    await client.close()
