import os
import pytest
from dotenv import load_dotenv

# Load the test environment FIRST, before any chatflow imports, so that the
# settings module picks these values up when it is first imported.
load_dotenv(dotenv_path=os.path.join(os.path.dirname(__file__), "..", ".env.test"))

from chatflow.workflows.definitions import parse_flow_definition  # noqa: E402


@pytest.fixture
def support_document():
    """message -> question with Yes/No branches, as the editor stores it."""
    return {
        "enabled": True,
        "startNodeId": "hi",
        "nodes": {
            "hi": {"type": "message", "text": "Hi", "options": [], "next": "support", "position": {"x": 553, "y": 40}},
            "support": {
                "type": "question",
                "text": "Support?",
                "options": ["Yes", "No"],
                "routes": [
                    {"condition": "equals", "value": "Yes", "next": "yes_reply"},
                    {"condition": "equals", "value": "No", "next": "no_reply"},
                ],
            },
            "yes_reply": {"type": "message", "text": "Great, let's get you some help.", "next": "ask_email"},
            "ask_email": {"type": "email", "text": "What's your email?", "validation": "email", "next": "thanks"},
            "thanks": {"type": "message", "text": "Thanks, someone will reach out.", "next": "bye"},
            "bye": {"type": "end", "text": "Goodbye!"},
            "no_reply": {"type": "end", "text": "No problem. Have a nice day!"},
        },
    }


@pytest.fixture
def support_flow(support_document):
    return parse_flow_definition(support_document)


@pytest.fixture
def make_flow():
    """Build a FlowDefinition from a nodes mapping."""
    def _make(nodes, start_node_id=None, enabled=True):
        return parse_flow_definition({"enabled": enabled, "startNodeId": start_node_id, "nodes": nodes})
    return _make
