"""Execution layer: payload construction, policies and execution records.

The webhook caller and the services live in ``agentmarket.execution.webhook``
and ``agentmarket.execution.service``; import them from there, they depend on
the normalization package which in turn depends on this one.
"""

from agentmarket.execution.models import Execution, ExecutionPayload, ExecutionStatus
from agentmarket.execution.payload import PayloadBuilder, create_execution_payload
from agentmarket.execution.policy import PolicyTable

__all__ = [
    "Execution",
    "ExecutionPayload",
    "ExecutionStatus",
    "PayloadBuilder",
    "PolicyTable",
    "create_execution_payload",
]
