# Models package (re-export feature modules for stable imports)
from .users.user import User
from .health.appointment import Appointment
from .chat.conversation import Conversation, Message
from .audit.audit_log import AuditLog

__all__ = [
    "User",
    "Appointment",
    "Conversation",
    "Message",
    "AuditLog",
]
