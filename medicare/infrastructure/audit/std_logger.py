import json
import logging
from datetime import datetime
from typing import Optional, Dict, Any

from ...application.ports.audit_logger import AuditLogger


class StdAuditLogger(AuditLogger):
    """Writes audit entries to the application log, then hands them to an optional sink."""

    def __init__(self, sink: Optional[AuditLogger] = None) -> None:
        self._logger = logging.getLogger(__name__)
        self._sink = sink

    def log(self, action: str, admin_id: str, user_id: Optional[str] = None, details: Optional[Dict[str, Any]] = None, ip_address: Optional[str] = None, user_agent: Optional[str] = None) -> None:
        entry = {
            "timestamp": datetime.utcnow().isoformat(),
            "action": action,
            "admin_id": admin_id,
            "user_id": user_id,
            "ip_address": ip_address,
            "user_agent": user_agent,
            "details": details or {},
        }
        self._logger.info(f"AUDIT: {json.dumps(entry, default=str)}")
        if self._sink is not None:
            self._sink.log(action, admin_id, user_id=user_id, details=details, ip_address=ip_address, user_agent=user_agent)
