# /chatflow/models/flow.py

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Flow definitions arrive as the JSON documents produced by the visual editor
# (camelCase keys, editor-only extras such as "position"). Every model accepts
# both the camelCase alias and the snake_case field name.


class RouteCondition(str, Enum):
    """Conditions a question route can test the user's answer with."""
    EQUALS = "equals"
    CONTAINS = "contains"
    DEFAULT = "default"


class Route(BaseModel):
    """One outgoing branch of a question node."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    condition: str = Field(default=RouteCondition.DEFAULT.value, description="equals, contains or default")
    value: Optional[str] = Field(default=None, description="Text the answer is compared against")
    next: Optional[str] = Field(default=None, description="Node id to continue at when the route fires")


class _NodeBase(BaseModel):
    # Extras are kept (not dropped) so authoring checks can see fields a
    # variant does not use, e.g. routes on a message node.
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="allow")

    id: Optional[str] = Field(default=None, description="Node id, injected from the nodes mapping key")
    text: str = Field(default="", description="Text shown to the user")
    options: List[str] = Field(default_factory=list, description="Quick-reply hints, questions only")

    @field_validator("text", mode="before")
    @classmethod
    def none_text_is_empty(cls, v):
        return "" if v is None else v

    @field_validator("options", mode="before")
    @classmethod
    def none_options_is_empty(cls, v):
        return [] if v is None else v


class StartNode(_NodeBase):
    type: Literal["start"] = "start"
    next: Optional[str] = None


class MessageNode(_NodeBase):
    type: Literal["message"] = "message"
    next: Optional[str] = None


class QuestionNode(_NodeBase):
    type: Literal["question"] = "question"
    routes: List[Route] = Field(default_factory=list, description="Branches, evaluated in declared order")
    save_as: Optional[str] = Field(default=None, alias="saveAs")

    @field_validator("routes", mode="before")
    @classmethod
    def none_routes_is_empty(cls, v):
        return [] if v is None else v


class EmailNode(_NodeBase):
    type: Literal["email"] = "email"
    validation: Optional[Literal["email"]] = "email"
    save_as: str = Field(default="email", alias="saveAs")
    error_message: Optional[str] = Field(default=None, alias="errorMessage")
    next: Optional[str] = None

    @field_validator("save_as", mode="before")
    @classmethod
    def blank_save_as_is_email(cls, v):
        return v or "email"


class EndNode(_NodeBase):
    type: Literal["end"] = "end"


Node = Annotated[
    Union[StartNode, MessageNode, QuestionNode, EmailNode, EndNode],
    Field(discriminator="type"),
]

# Nodes that pause the conversation until the user answers
INPUT_NODE_TYPES = ("question", "email")


class FlowDefinition(BaseModel):
    """
    Immutable, operator-authored chat script.

    Holds the graph only. Reference integrity is deliberately not checked here:
    the engine tolerates stale start ids and dangling links at traversal time.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    enabled: bool = Field(default=True, description="Whether callers should run flow mode at all")
    start_node_id: Optional[str] = Field(default=None, alias="startNodeId", description="Designated entry node id")
    nodes: Dict[str, Node] = Field(default_factory=dict, description="Nodes keyed by id")

    @field_validator("enabled", mode="before")
    @classmethod
    def missing_enabled_is_true(cls, v):
        return True if v is None else v

    @model_validator(mode="before")
    @classmethod
    def inject_node_ids(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        nodes = data.get("nodes")
        if not isinstance(nodes, dict):
            return data
        injected = {}
        for node_id, node in nodes.items():
            if isinstance(node, dict):
                node = {**node, "id": node_id}
            injected[node_id] = node
        return {**data, "nodes": injected}

    def get_node(self, node_id: Optional[str]) -> Optional[Node]:
        """Look a node up by id; a missing id or node is simply None."""
        if not node_id:
            return None
        return self.nodes.get(node_id)


class FlowMessage(BaseModel):
    """One outgoing chat message produced by the engine."""
    model_config = ConfigDict(populate_by_name=True)

    text: str
    options: List[str] = Field(default_factory=list)
    type: Optional[str] = Field(default=None, description="Type of the node that produced the message; unset on re-prompts")


class SessionCursor(BaseModel):
    """Where a conversation is paused in the flow; owned and persisted by the caller."""
    model_config = ConfigDict(populate_by_name=True)

    current_step_id: Optional[str] = Field(default=None, alias="currentStepId")
    captured_data: Dict[str, str] = Field(default_factory=dict, alias="capturedData")


class RepromptReason(str, Enum):
    """Soft outcomes: the user is asked again and the cursor stays put."""
    VALIDATION_FAILED = "validation_failed"
    NO_ROUTE_MATCHED = "no_route_matched"


class StartSequence(BaseModel):
    """Result of beginning a brand-new conversation."""
    model_config = ConfigDict(populate_by_name=True)

    messages: List[FlowMessage] = Field(default_factory=list)
    current_step_id: Optional[str] = Field(default=None, alias="currentStepId")
    is_complete: bool = Field(default=False, alias="isComplete")


class StepResult(BaseModel):
    """Result of consuming one user turn."""
    model_config = ConfigDict(populate_by_name=True)

    next_step_id: Optional[str] = Field(default=None, alias="nextStepId")
    messages: List[FlowMessage] = Field(default_factory=list)
    is_complete: bool = Field(default=False, alias="isComplete")
    captured_data: Dict[str, str] = Field(default_factory=dict, alias="capturedData")
    reprompt_reason: Optional[RepromptReason] = Field(default=None, alias="repromptReason")

    @property
    def is_reprompt(self) -> bool:
        return self.reprompt_reason is not None


class FlowState(BaseModel):
    """
    Per-conversation flow state as callers persist it next to the message log.
    `data` accumulates every captured field across turns.
    """
    model_config = ConfigDict(populate_by_name=True)

    current_step_id: Optional[str] = Field(default=None, alias="currentStepId")
    is_complete: bool = Field(default=False, alias="isComplete")
    data: Dict[str, str] = Field(default_factory=dict)

    def to_cursor(self) -> SessionCursor:
        return SessionCursor(current_step_id=self.current_step_id, captured_data=dict(self.data))


class FlowTurn(BaseModel):
    """What the turn service hands back to a chat endpoint."""
    model_config = ConfigDict(populate_by_name=True)

    handled: bool = Field(default=False, description="False means fall back to free-form handling")
    action: Optional[str] = Field(default=None, description="start or continue")
    messages: List[FlowMessage] = Field(default_factory=list)
    state: Optional[FlowState] = Field(default=None, description="State to persist; None leaves stored state untouched")
    captured_data: Dict[str, str] = Field(default_factory=dict, alias="capturedData")
    error: Optional[str] = Field(default=None, description="Fatal engine error kind, if any")
