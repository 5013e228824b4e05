# backend/tests/unit/test_conditions.py
import pytest

from chatflow.models.flow import Route
from chatflow.workflows.conditions import evaluate_condition, first_matching_route


@pytest.mark.parametrize("condition, value, answer, expected", [
    ("equals", "Yes", "yes", True),
    ("equals", "Yes", "  YES ", True),
    ("equals", "Yes", "yes please", False),
    ("contains", "refund", "I want a REFUND now", True),
    ("contains", "refund", "I want my money back", False),
    ("default", None, "anything at all", True),
    ("default", "ignored", "", True),
    ("regex", ".*", "anything", False),
])
def test_evaluate_condition(condition, value, answer, expected):
    route = Route(condition=condition, value=value, next="x")
    assert evaluate_condition(route, answer) is expected


def test_missing_value_only_equals_empty_answer():
    route = Route(condition="equals", next="x")
    assert evaluate_condition(route, "   ") is True
    assert evaluate_condition(route, "hi") is False


def test_first_matching_route_keeps_declared_order():
    routes = [
        Route(condition="contains", value="help", next="first"),
        Route(condition="equals", value="help", next="second"),
        Route(condition="default", next="fallback"),
    ]
    assert first_matching_route(routes, "help").next == "first"
    assert first_matching_route(routes, "bye").next == "fallback"


def test_first_matching_route_none_when_nothing_fires():
    routes = [Route(condition="equals", value="a", next="x")]
    assert first_matching_route(routes, "b") is None
    assert first_matching_route([], "b") is None
