# /chatflow/workflows/conditions.py

"""Route condition evaluation for question nodes."""

from typing import Iterable, Optional
from chatflow.models.flow import Route, RouteCondition


def normalize_answer(user_message: Optional[str]) -> str:
    return (user_message or "").strip().lower()


def evaluate_condition(route: Route, user_message: str) -> bool:
    """
    Test one route against the user's answer.

    The answer is trimmed and lower-cased; the route value is lower-cased.
    Unknown conditions never match.
    """
    answer = normalize_answer(user_message)
    value = (route.value or "").lower()

    if route.condition == RouteCondition.EQUALS.value:
        return answer == value
    if route.condition == RouteCondition.CONTAINS.value:
        return value in answer
    if route.condition == RouteCondition.DEFAULT.value:
        return True
    return False


def first_matching_route(routes: Iterable[Route], user_message: str) -> Optional[Route]:
    """Declared order is the tie-break: the first route that fires wins."""
    for route in routes:
        if evaluate_condition(route, user_message):
            return route
    return None
