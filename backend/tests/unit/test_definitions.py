# backend/tests/unit/test_definitions.py
import json
import pytest

from chatflow.models.flow import EmailNode, MessageNode, QuestionNode
from chatflow.workflows.definitions import dump_flow_definition, parse_flow_definition
from chatflow.workflows.errors import FlowDefinitionError


def test_parse_builds_tagged_nodes(support_document):
    flow = parse_flow_definition(support_document)

    assert flow.start_node_id == "hi"
    assert flow.enabled is True
    assert isinstance(flow.nodes["hi"], MessageNode)
    assert isinstance(flow.nodes["support"], QuestionNode)
    assert isinstance(flow.nodes["ask_email"], EmailNode)
    assert flow.nodes["support"].routes[0].next == "yes_reply"


def test_node_ids_come_from_mapping_keys(support_document):
    flow = parse_flow_definition(support_document)
    assert all(node.id == node_id for node_id, node in flow.nodes.items())


def test_email_node_defaults(make_flow):
    node = make_flow({"e": {"type": "email", "text": "Email?"}}).nodes["e"]
    assert node.validation == "email"
    assert node.save_as == "email"
    assert node.error_message is None
    assert node.next is None


def test_null_fields_from_editor_are_tolerated():
    flow = parse_flow_definition({
        "enabled": None,
        "startNodeId": None,
        "nodes": {"q": {"type": "question", "text": None, "options": None, "routes": None}},
    })
    node = flow.nodes["q"]
    assert flow.enabled is True
    assert node.text == ""
    assert node.options == []
    assert node.routes == []


def test_parse_json_string(support_document):
    flow = parse_flow_definition(json.dumps(support_document))
    assert len(flow.nodes) == len(support_document["nodes"])


def test_parse_returns_existing_definition(support_flow):
    assert parse_flow_definition(support_flow) is support_flow


@pytest.mark.parametrize("document", [
    "{not json",
    b'{"nodes": {"a": {"type": "start", "text": "\xff"}}}',
    ["a", "list"],
    {"nodes": {"x": {"type": "teleport", "text": "?"}}},
    {"nodes": {"x": {"text": "no type"}}},
    {"nodes": "not a mapping"},
])
def test_invalid_documents_raise(document):
    with pytest.raises(FlowDefinitionError):
        parse_flow_definition(document)


def test_get_node_tolerates_missing_ids(support_flow):
    assert support_flow.get_node("ghost") is None
    assert support_flow.get_node(None) is None
    assert support_flow.get_node("hi").text == "Hi"


def test_dump_keeps_editor_fields_and_aliases(support_document):
    dumped = dump_flow_definition(parse_flow_definition(support_document))

    assert dumped["startNodeId"] == "hi"
    assert dumped["nodes"]["hi"]["position"] == {"x": 553, "y": 40}
    assert dumped["nodes"]["ask_email"]["saveAs"] == "email"
    assert "id" not in dumped["nodes"]["hi"]
    assert parse_flow_definition(dumped).model_dump() == parse_flow_definition(support_document).model_dump()
