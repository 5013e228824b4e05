# /chatflow/workflows/validator.py

"""
Pure validation functions for flow input and flow definitions.

validate_email_input() is used by the engine on every email answer.
validate_flow_definition() is an authoring-time check for editors and import
scripts; the engine never calls it and keeps tolerating broken graphs.

All functions are:
- Pure (no side effects)
- Deterministic (same input = same output)
- No logging
"""

import re
from typing import Dict, List, Optional, TypedDict
from chatflow.models.flow import FlowDefinition, RouteCondition

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

KNOWN_CONDITIONS = {c.value for c in RouteCondition}


class ValidationResult(TypedDict):
    """Result of a validation check."""
    is_valid: bool
    error_code: Optional[str]
    message: Optional[str]


class FlowIssue(TypedDict):
    """One problem found in a flow definition."""
    node_id: Optional[str]
    severity: str
    error_code: str
    message: str


class DefinitionReport(ValidationResult):
    """Validation result for a whole flow definition."""
    issues: List[FlowIssue]


def validate_email_input(text: Optional[str]) -> ValidationResult:
    """
    Validate that a user's answer looks like an email address.

    Args:
        text: The raw answer

    Returns:
        ValidationResult with is_valid=True if the answer has an email shape
    """
    if not text or not text.strip():
        return {
            "is_valid": False,
            "error_code": "EMPTY_EMAIL",
            "message": "Email cannot be empty"
        }

    if not EMAIL_PATTERN.match(text.strip()):
        return {
            "is_valid": False,
            "error_code": "INVALID_EMAIL",
            "message": f"'{text.strip()}' is not a valid email address"
        }

    return {
        "is_valid": True,
        "error_code": None,
        "message": None
    }


def _issue(node_id: Optional[str], severity: str, error_code: str, message: str) -> FlowIssue:
    return {
        "node_id": node_id,
        "severity": severity,
        "error_code": error_code,
        "message": message
    }


def _check_start(definition: FlowDefinition) -> List[FlowIssue]:
    start_id = definition.start_node_id
    if start_id and start_id in definition.nodes:
        return []

    has_start_node = any(node.type == "start" for node in definition.nodes.values())
    if not has_start_node:
        return [_issue(None, "error", "NO_START_NODE",
                       f"startNodeId '{start_id}' does not resolve and no node has type 'start'")]
    if start_id:
        return [_issue(None, "warning", "STALE_START_NODE_ID",
                       f"startNodeId '{start_id}' does not resolve; the first 'start' node will be used")]
    return [_issue(None, "warning", "MISSING_START_NODE_ID",
                   "startNodeId is not set; the first 'start' node will be used")]


def _check_node(node_id: str, node, node_ids) -> List[FlowIssue]:
    issues: List[FlowIssue] = []
    extras: Dict = node.model_extra or {}

    if node.type in ("start", "message", "email"):
        if "routes" in extras:
            issues.append(_issue(node_id, "error", "ROUTES_NOT_ALLOWED",
                                 f"'{node.type}' nodes continue via 'next'; their routes are ignored"))
        if node.next and node.next not in node_ids:
            issues.append(_issue(node_id, "error", "DANGLING_NEXT",
                                 f"next points at unknown node '{node.next}'"))

    elif node.type == "question":
        if "next" in extras:
            issues.append(_issue(node_id, "warning", "NEXT_IGNORED",
                                 "question nodes branch via routes; 'next' is ignored"))
        if not node.routes:
            issues.append(_issue(node_id, "warning", "NO_ROUTES",
                                 "question has no routes; every answer will be re-prompted"))
        last_index = len(node.routes) - 1
        for index, route in enumerate(node.routes):
            if route.condition not in KNOWN_CONDITIONS:
                issues.append(_issue(node_id, "error", "UNKNOWN_CONDITION",
                                     f"route {index} has unknown condition '{route.condition}'"))
            if route.condition == RouteCondition.DEFAULT.value and index != last_index:
                issues.append(_issue(node_id, "warning", "DEFAULT_NOT_LAST",
                                     f"route {index} is a default route but is not last; later routes can never fire"))
            if not route.next:
                issues.append(_issue(node_id, "error", "ROUTE_WITHOUT_TARGET",
                                     f"route {index} has no target node"))
            elif route.next not in node_ids:
                issues.append(_issue(node_id, "error", "DANGLING_ROUTE",
                                     f"route {index} points at unknown node '{route.next}'"))

    elif node.type == "end":
        if "next" in extras or "routes" in extras:
            issues.append(_issue(node_id, "warning", "END_HAS_SUCCESSOR",
                                 "end nodes are terminal; next/routes are ignored"))

    return issues


def validate_flow_definition(definition: FlowDefinition) -> DefinitionReport:
    """
    Check a flow definition for problems an operator should fix.

    Errors make the report invalid; warnings describe behaviour the operator
    may not expect but that the engine handles.

    Args:
        definition: The parsed flow definition

    Returns:
        DefinitionReport with every issue found, first error surfaced at the top level
    """
    if not definition.nodes:
        issue = _issue(None, "error", "EMPTY_FLOW", "Flow has no nodes")
        return {
            "is_valid": False,
            "error_code": issue["error_code"],
            "message": issue["message"],
            "issues": [issue]
        }

    issues = _check_start(definition)
    node_ids = set(definition.nodes)
    for node_id, node in definition.nodes.items():
        issues.extend(_check_node(node_id, node, node_ids))

    errors = [issue for issue in issues if issue["severity"] == "error"]
    if errors:
        return {
            "is_valid": False,
            "error_code": errors[0]["error_code"],
            "message": errors[0]["message"],
            "issues": issues
        }

    return {
        "is_valid": True,
        "error_code": None,
        "message": None,
        "issues": issues
    }
