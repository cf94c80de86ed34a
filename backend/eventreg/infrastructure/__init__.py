"""
Infrastructure layer - store implementations behind the service interfaces.
Keeps business logic clean from implementation details.
"""

from .sql_store import SqlAlchemyStore
from .memory_store import InMemoryStore

__all__ = ['SqlAlchemyStore', 'InMemoryStore']
