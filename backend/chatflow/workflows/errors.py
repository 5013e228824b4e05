# /chatflow/workflows/errors.py

"""
Errors raised by the flow engine.

Only definitions the engine cannot run at all are errors. A bad answer from the
user is never an error: it comes back as a normal result with a reprompt reason
(see RepromptReason in chatflow.models.flow).
"""

from enum import Enum
from typing import Optional


class FlowErrorKind(str, Enum):
    NO_START_NODE = "no_start_node"
    NODE_NOT_FOUND = "node_not_found"


class FlowError(Exception):
    """Base class for fatal flow errors. Callers should drop out of flow mode."""

    kind: Optional[FlowErrorKind] = None

    def __init__(self, message: str, node_id: Optional[str] = None):
        super().__init__(message)
        self.node_id = node_id


class NoStartNodeError(FlowError):
    """Neither startNodeId nor any node of type 'start' resolves."""

    kind = FlowErrorKind.NO_START_NODE


class NodeNotFoundError(FlowError):
    """The session cursor points at a node that no longer exists."""

    kind = FlowErrorKind.NODE_NOT_FOUND


class FlowDefinitionError(ValueError):
    """A stored flow document could not be turned into a FlowDefinition."""
