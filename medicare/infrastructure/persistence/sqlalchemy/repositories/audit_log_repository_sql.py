from typing import Any, Dict, Optional

from .....db.models import AuditLog
from .....application.ports.audit_logger import AuditLogger
from .base import SqlRepository


class SqlAuditLogRepository(SqlRepository, AuditLogger):
    """Append-only; the core never reads audit records back."""

    def log(self, action: str, admin_id: str, user_id: Optional[str] = None, details: Optional[Dict[str, Any]] = None, ip_address: Optional[str] = None, user_agent: Optional[str] = None) -> None:
        entry = AuditLog(
            action=action,
            admin_id=admin_id,
            user_id=user_id,
            details=details or {},
            ip_address=ip_address,
            user_agent=user_agent,
        )
        with self._guard("audit log write"):
            self.session.add(entry)
            self.session.commit()
