import logging
from typing import Any, Dict, List, Optional, Union
from pydantic import ValidationError
from chatflow.config import strings
from chatflow.config.settings import settings
from chatflow.models.flow import FlowDefinition, FlowMessage, FlowState, FlowTurn
from chatflow.utils.metrics import (
    flow_captured_fields_counter,
    flow_errors_counter,
    flow_reprompts_counter,
    flow_turns_counter,
)
from chatflow.workflows.definitions import parse_flow_definition
from chatflow.workflows.engine import FlowEngine
from chatflow.workflows.errors import FlowDefinitionError, FlowError

logger = logging.getLogger(__name__)

StateLike = Union[FlowState, Dict[str, Any], None]


class FlowService:
    """
    Decides whether a chat turn belongs to the flow and runs it.

    Nothing is persisted here: every FlowTurn carries the state the caller
    should store before handling the conversation's next message.
    """

    def __init__(self, max_steps: Optional[int] = None, transition_enabled: Optional[bool] = None,
                 init_trigger: Optional[str] = None):
        self.max_steps = max_steps
        self.transition_enabled = (settings.flow_complete_transition_enabled
                                   if transition_enabled is None else transition_enabled)
        self.init_trigger = init_trigger or settings.flow_init_trigger
        logger.info("FlowService initialized.")

    def should_process_flow(self, state: Optional[FlowState], trigger: Optional[str] = None,
                            message_count: int = 0) -> bool:
        """
        A flow runs when explicitly (re)started, while an unfinished flow is in
        progress, or on the very first message of a conversation.
        """
        if trigger == self.init_trigger:
            return True
        if state is not None:
            return not state.is_complete
        return message_count <= 1

    def handle_turn(self, definition: Union[FlowDefinition, Dict[str, Any], None], state: StateLike = None,
                    message: Optional[str] = None, trigger: Optional[str] = None,
                    message_count: int = 0) -> FlowTurn:
        """
        Run one chat turn through the flow, if the flow applies.

        Args:
            definition: The chatbot's flow definition (or its stored document)
            state: The conversation's stored flow state, if any
            message: The user's message for this turn
            trigger: Optional client trigger; the init trigger restarts the flow
            message_count: Messages already in the conversation log

        Returns:
            FlowTurn. handled=False tells the caller to answer free-form instead.
        """
        if definition is None:
            return FlowTurn(handled=False)

        try:
            definition = parse_flow_definition(definition)
        except FlowDefinitionError as e:
            logger.error(f"Stored flow definition is unusable: {e}")
            flow_errors_counter.labels(kind="invalid_definition").inc()
            return FlowTurn(handled=False, error="invalid_definition")

        if not definition.enabled:
            flow_turns_counter.labels(action="none", outcome="disabled").inc()
            return FlowTurn(handled=False)

        if state is not None and not isinstance(state, FlowState):
            try:
                state = FlowState.model_validate(state)
            except ValidationError as e:
                logger.error(f"Stored flow state is unusable: {e}")
                flow_errors_counter.labels(kind="invalid_state").inc()
                return FlowTurn(handled=False, error="invalid_state")

        if not self.should_process_flow(state, trigger, message_count):
            flow_turns_counter.labels(action="none", outcome="skipped").inc()
            return FlowTurn(handled=False)

        starting = state is None or trigger == self.init_trigger
        action = "start" if starting else "continue"
        try:
            engine = FlowEngine(definition, max_steps=self.max_steps)
            if starting:
                return self._start(engine)
            return self._continue(engine, state, message)
        except FlowDefinitionError as e:
            logger.error(f"Flow definition cannot be executed: {e}")
            flow_errors_counter.labels(kind="invalid_definition").inc()
            flow_turns_counter.labels(action=action, outcome="error").inc()
            return FlowTurn(handled=False, action=action, error="invalid_definition")
        except FlowError as e:
            kind = e.kind.value if e.kind else "unknown"
            logger.error(f"Flow engine error ({kind}), falling back to free-form chat: {e}")
            flow_errors_counter.labels(kind=kind).inc()
            flow_turns_counter.labels(action=action, outcome="error").inc()
            return FlowTurn(handled=False, action=action, error=kind)

    def _start(self, engine: FlowEngine) -> FlowTurn:
        sequence = engine.get_start_sequence()
        state = FlowState(current_step_id=sequence.current_step_id, is_complete=sequence.is_complete, data={})
        outcome = "completed" if sequence.is_complete else "waiting"
        flow_turns_counter.labels(action="start", outcome=outcome).inc()
        logger.info(f"Flow sequence started with {len(sequence.messages)} message(s), paused at {state.current_step_id}")
        return FlowTurn(handled=bool(sequence.messages), action="start", messages=sequence.messages, state=state)

    def _continue(self, engine: FlowEngine, state: FlowState, message: Optional[str]) -> FlowTurn:
        result = engine.process_message(state, message)

        if result.is_reprompt:
            flow_reprompts_counter.labels(reason=result.reprompt_reason.value).inc()
            flow_turns_counter.labels(action="continue", outcome="reprompt").inc()
            new_state = FlowState(current_step_id=result.next_step_id, is_complete=False, data=dict(state.data))
            return FlowTurn(handled=True, action="continue", messages=result.messages, state=new_state)

        data = {**state.data, **result.captured_data}
        for field in result.captured_data:
            flow_captured_fields_counter.labels(field=field).inc()
        new_state = FlowState(current_step_id=result.next_step_id, is_complete=result.is_complete, data=data)

        messages = list(result.messages)
        if result.is_complete and self.transition_enabled:
            messages = self._with_transition(messages)

        outcome = "completed" if result.is_complete else "advanced"
        flow_turns_counter.labels(action="continue", outcome=outcome).inc()
        if result.is_complete:
            logger.info(f"Flow completed at {result.next_step_id} with fields {sorted(data)}")
        return FlowTurn(handled=bool(messages), action="continue", messages=messages, state=new_state,
                        captured_data=result.captured_data)

    def _with_transition(self, messages: List[FlowMessage]) -> List[FlowMessage]:
        """Append the hand-back message unless the flow's last message already says it."""
        transition = strings.FLOW_COMPLETE_TRANSITION
        if messages and transition in messages[-1].text:
            return messages
        return messages + [FlowMessage(text=transition, options=[], type="text")]


# Globally accessible instance
flow_service = FlowService()
