"""Storage layer for agents and executions.

This module provides store interfaces with in-memory and SQLAlchemy
implementations.
"""

from agentmarket.storage.base import AgentStore, ExecutionStore
from agentmarket.storage.database import Database, DatabaseConfig
from agentmarket.storage.memory import InMemoryAgentStore, InMemoryExecutionStore
from agentmarket.storage.repository import SqlAgentStore, SqlExecutionStore

__all__ = [
    "AgentStore",
    "Database",
    "DatabaseConfig",
    "ExecutionStore",
    "InMemoryAgentStore",
    "InMemoryExecutionStore",
    "SqlAgentStore",
    "SqlExecutionStore",
]
