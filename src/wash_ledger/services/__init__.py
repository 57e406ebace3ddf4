"""Wash ledger services."""

from wash_ledger.services.approval_workflow import ApprovalWorkflow
from wash_ledger.services.audit_trail import AuditAction, AuditTrail
from wash_ledger.services.catalog import UserDirectory, VehicleCatalog
from wash_ledger.services.cutoff_policy import CutoffPolicy
from wash_ledger.services.entry_ledger import EntryLedger, EntryStatus
from wash_ledger.services.mutation_guard import Decision, MutationGuard, ToggleAction, Verdict
from wash_ledger.services.state_machine import ApprovalStateMachine, ApprovalStatus
from wash_ledger.services.wash_service import WashService

__all__ = [
    "ApprovalWorkflow",
    "AuditAction",
    "AuditTrail",
    "UserDirectory",
    "VehicleCatalog",
    "CutoffPolicy",
    "EntryLedger",
    "EntryStatus",
    "Decision",
    "MutationGuard",
    "ToggleAction",
    "Verdict",
    "ApprovalStateMachine",
    "ApprovalStatus",
    "WashService",
]
