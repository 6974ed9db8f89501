"""Persistence bindings.

A binding moves an origin's blob to and from durable storage.  The
storage orchestrator picks one binding at construction and never
inspects which variant it holds.
"""

from ampstorage.bindings._base import PersistenceBinding
from ampstorage.bindings.local import LocalBinding
from ampstorage.bindings.remote import RemoteBinding

__all__ = ["LocalBinding", "PersistenceBinding", "RemoteBinding"]
