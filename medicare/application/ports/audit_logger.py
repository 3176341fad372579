from typing import Optional, Dict, Any, Protocol


class AuditLogger(Protocol):
    def log(self, action: str, admin_id: str, user_id: Optional[str] = None, details: Optional[Dict[str, Any]] = None, ip_address: Optional[str] = None, user_agent: Optional[str] = None) -> None:
        ...
