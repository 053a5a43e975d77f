"""Low-level infrastructure: audit storage, logging and metrics.

Public API: AuditRecord, AuditStatus, AuditStore, configure_logging
Internal: log_setup, metrics
"""

from remoteadmin.infra.audit_log import AuditRecord, AuditStatus, AuditStore
from remoteadmin.infra.log_setup import configure_logging

__all__ = [
    "AuditRecord",
    "AuditStatus",
    "AuditStore",
    "configure_logging",
]
