# /chatflow/workflows/engine.py

"""
Pure flow execution engine.

Runs an operator-authored chat flow against one conversation:
- Produces the opening message chain for a new conversation
- Validates answers (email nodes) and re-prompts without advancing on bad input
- Picks a question's branch from its routes, first match in declared order
- Auto-advances through start/message nodes until the flow needs input again
- Reports captured answers so the caller can merge them into its session

The engine is:
- Pure (the only side effect is logging)
- Deterministic (same definition, cursor and input = same result)
- Stateless between calls (the caller persists the cursor)
- No database writes
- No network calls
"""

from typing import Any, Dict, List, Optional, Tuple, Union
import structlog
from chatflow.config import strings
from chatflow.config.settings import settings
from chatflow.models.flow import (
    INPUT_NODE_TYPES,
    FlowDefinition,
    FlowMessage,
    FlowState,
    Node,
    RepromptReason,
    SessionCursor,
    StartSequence,
    StepResult,
)
from chatflow.workflows.conditions import first_matching_route
from chatflow.workflows.definitions import parse_flow_definition
from chatflow.workflows.errors import FlowDefinitionError, NodeNotFoundError, NoStartNodeError
from chatflow.workflows.validator import validate_email_input

log = structlog.get_logger(__name__)

CursorLike = Union[SessionCursor, FlowState, Dict[str, Any], None]

# (messages, id of the last node emitted, flow finished?)
Walk = Tuple[List[FlowMessage], Optional[str], bool]


def _to_cursor(cursor: CursorLike) -> SessionCursor:
    if cursor is None:
        return SessionCursor()
    if isinstance(cursor, SessionCursor):
        return cursor
    if isinstance(cursor, FlowState):
        return cursor.to_cursor()
    return SessionCursor.model_validate(cursor)


def _message_for(node: Node) -> FlowMessage:
    return FlowMessage(text=node.text, options=list(node.options), type=node.type)


class FlowEngine:
    """Executes one flow definition. Cheap to build; build one per request."""

    def __init__(self, definition: Union[FlowDefinition, Dict[str, Any], str], max_steps: Optional[int] = None):
        definition = parse_flow_definition(definition)
        if not definition.nodes:
            raise FlowDefinitionError("Flow definition has no nodes")

        self.flow = definition
        self.max_steps = max_steps if max_steps is not None else settings.flow_max_auto_advance_steps
        if self.max_steps < 1:
            raise ValueError("max_steps must be at least 1")

    # ---------------- Start resolution ---------------- #

    def resolve_start_node_id(self) -> str:
        """
        Find the node a new conversation starts at.

        startNodeId wins when it resolves. Otherwise the first node of type
        'start' is used, so a stale id left behind by an edit does not break
        the chatbot.

        Raises:
            NoStartNodeError: If neither resolves
        """
        start_id = self.flow.start_node_id
        if start_id and start_id in self.flow.nodes:
            return start_id

        for node_id, node in self.flow.nodes.items():
            if node.type == "start":
                log.warning("Start node id does not resolve, using first start node",
                            start_node_id=start_id, resolved_node_id=node_id)
                return node_id

        log.error("No start node could be resolved", start_node_id=start_id, node_count=len(self.flow.nodes))
        raise NoStartNodeError(f"Start node '{start_id}' not found and no node has type 'start'", node_id=start_id)

    def get_start_node(self) -> Optional[Node]:
        """The node at startNodeId, without fallback. Prefer get_start_sequence()."""
        return self.flow.get_node(self.flow.start_node_id)

    # ---------------- Traversal ---------------- #

    def _walk(self, node_id: Optional[str], fallback_id: Optional[str] = None) -> Walk:
        """
        Emit nodes from node_id onwards until the flow needs input or ends.

        Stops at question/email (waiting), end (finished), or a missing/unset
        next (finished). The step bound and a repeated node both stop the walk
        early with the flow unfinished.
        """
        messages: List[FlowMessage] = []
        last_id = fallback_id
        visited = set()
        current_id = node_id

        while current_id:
            if len(messages) >= self.max_steps:
                log.warning("Auto-advance step limit reached", node_id=current_id, max_steps=self.max_steps)
                return messages, last_id, False
            if current_id in visited:
                log.warning("Flow cycle detected during auto-advance", node_id=current_id)
                return messages, last_id, False

            node = self.flow.get_node(current_id)
            if node is None:
                log.warning("Flow links to a missing node, ending flow", node_id=current_id, previous_node_id=last_id)
                return messages, last_id, True

            log.debug("Traversing flow node", node_id=current_id, node_type=node.type)
            visited.add(current_id)
            messages.append(_message_for(node))
            last_id = current_id

            if node.type in INPUT_NODE_TYPES:
                return messages, last_id, False
            if node.type == "end":
                return messages, last_id, True
            current_id = node.next

        return messages, last_id, True

    # ---------------- Begin ---------------- #

    def get_start_sequence(self) -> StartSequence:
        """
        Produce the opening messages for a brand-new conversation.

        Returns:
            StartSequence with the chained messages, the node the conversation
            is now paused at, and whether the flow already finished

        Raises:
            NoStartNodeError: If no entry node can be resolved
        """
        start_id = self.resolve_start_node_id()
        messages, last_id, is_complete = self._walk(start_id)
        log.info("Flow started", start_node_id=start_id, current_step_id=last_id,
                 message_count=len(messages), is_complete=is_complete)
        return StartSequence(messages=messages, current_step_id=last_id, is_complete=is_complete)

    # ---------------- Advance ---------------- #

    def _reprompt(self, step_id: str, text: str, options: List[str], reason: RepromptReason) -> StepResult:
        log.info("Re-prompting user", current_step_id=step_id, reason=reason.value)
        return StepResult(
            next_step_id=step_id,
            messages=[FlowMessage(text=text, options=list(options))],
            is_complete=False,
            reprompt_reason=reason,
        )

    def _resolve_next(self, node: Node, user_message: str) -> Optional[str]:
        if node.type == "question":
            route = first_matching_route(node.routes, user_message)
            return route.next if route else None
        if node.type == "end":
            return None
        return node.next

    def process_message(self, cursor: CursorLike, user_message: Optional[str]) -> StepResult:
        """
        Consume one user turn.

        Args:
            cursor: Where the conversation is paused (SessionCursor, FlowState,
                or their dict form). A missing step id falls back to the start node.
            user_message: The user's free-form answer

        Returns:
            StepResult with the next messages and the new position. Bad input is
            a re-prompt: same position, reprompt_reason set, nothing captured.

        Raises:
            NodeNotFoundError: If the cursor points at a node that no longer exists
            NoStartNodeError: If the cursor is empty and no start node resolves
        """
        cursor = _to_cursor(cursor)
        user_message = user_message or ""
        current_step_id = cursor.current_step_id or self.resolve_start_node_id()

        node = self.flow.get_node(current_step_id)
        if node is None:
            log.error("Session cursor points at a missing node", current_step_id=current_step_id)
            raise NodeNotFoundError(f"Node '{current_step_id}' not found", node_id=current_step_id)

        # 1. Validate input
        if getattr(node, "validation", None) == "email":
            if not validate_email_input(user_message)["is_valid"]:
                return self._reprompt(current_step_id, node.error_message or strings.INVALID_EMAIL, [],
                                      RepromptReason.VALIDATION_FAILED)

        # 2. Determine branch
        next_id = self._resolve_next(node, user_message)
        if not next_id:
            if node.options:
                text = strings.SELECT_AN_OPTION.format(options=", ".join(node.options))
            else:
                text = strings.UNRECOGNISED_ANSWER
            return self._reprompt(current_step_id, text, node.options, RepromptReason.NO_ROUTE_MATCHED)

        # 3. Capture the answer to the node just answered
        captured_data: Dict[str, str] = {}
        save_as = getattr(node, "save_as", None)
        if save_as or node.type == "email":
            captured_data[save_as or "email"] = user_message.strip()

        # 4. Chain onwards until input is needed again
        messages, last_id, is_complete = self._walk(next_id, fallback_id=current_step_id)
        log.info("Flow advanced", from_step_id=current_step_id, next_step_id=last_id,
                 message_count=len(messages), is_complete=is_complete,
                 captured_fields=sorted(captured_data))

        return StepResult(
            next_step_id=last_id,
            messages=messages,
            is_complete=is_complete,
            captured_data=captured_data,
        )
