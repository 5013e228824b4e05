# /chatflow/workflows/definitions.py

"""
Loading of stored flow documents.

A flow is stored per chatbot as a JSON-shaped document:

    {
        "enabled": true,
        "startNodeId": "node_1",
        "nodes": {
            "node_1": {"type": "message", "text": "Hi!", "next": "node_2"},
            "node_2": {"type": "question", "text": "Need support?",
                       "options": ["Yes", "No"],
                       "routes": [{"condition": "equals", "value": "Yes", "next": "node_3"}]},
            ...
        }
    }

Only the shape is checked here. Whether the links resolve is left to the
engine (which tolerates broken links) and to validate_flow_definition().
"""

import json
from typing import Any, Dict, Union
from pydantic import ValidationError
from chatflow.models.flow import FlowDefinition
from chatflow.workflows.errors import FlowDefinitionError

# Type definition for a stored flow document
FlowDocument = Dict[str, Any]


def parse_flow_definition(document: Union[FlowDocument, str, bytes, FlowDefinition]) -> FlowDefinition:
    """
    Turn a stored flow document into a FlowDefinition.

    Args:
        document: A dict, a JSON string/bytes, or an already parsed FlowDefinition

    Returns:
        The parsed FlowDefinition

    Raises:
        FlowDefinitionError: If the document is not valid JSON or has the wrong shape
    """
    if isinstance(document, FlowDefinition):
        return document

    if isinstance(document, (str, bytes)):
        try:
            document = json.loads(document)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise FlowDefinitionError(f"Flow document is not valid JSON: {e}") from e

    if not isinstance(document, dict):
        raise FlowDefinitionError(f"Flow document must be an object, got {type(document).__name__}")

    try:
        return FlowDefinition.model_validate(document)
    except ValidationError as e:
        raise FlowDefinitionError(f"Invalid flow document: {e}") from e


def dump_flow_definition(definition: FlowDefinition) -> FlowDocument:
    """Serialize a FlowDefinition back to its stored (camelCase) document shape."""
    document = definition.model_dump(by_alias=True, exclude_none=True)
    for node in document.get("nodes", {}).values():
        node.pop("id", None)
    return document
