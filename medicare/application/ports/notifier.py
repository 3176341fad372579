from typing import Any, Protocol

NEW_MESSAGE = "new_message"
CHAT_UPDATED = "chat_updated"
APPOINTMENT_CREATED = "appointment_created"
APPOINTMENT_UPDATED = "appointment_updated"
APPOINTMENT_DELETED = "appointment_deleted"
APPOINTMENT_REMINDER = "appointment_reminder"
DASHBOARD_UPDATE = "dashboard_update"


def personal_room(user_id: str) -> str:
    return f"user:{user_id}"


def chat_room(conversation_id: str) -> str:
    return f"chat:{conversation_id}"


class Notifier(Protocol):
    def emit_to_room(self, room: str, event: str, payload: Any = None) -> None:
        """Deliver to every connection joined to `room` right now. No replay."""
        ...
