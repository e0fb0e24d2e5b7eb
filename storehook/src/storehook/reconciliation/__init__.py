"""Reconciliation of platform events into local customer records."""

from storehook.reconciliation.merge import is_empty, merge_fields
from storehook.reconciliation.store import ReconciliationStore

__all__ = ["ReconciliationStore", "is_empty", "merge_fields"]
