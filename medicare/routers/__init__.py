from . import admin_router, appointments_router, chats_router, realtime_router

__all__ = ["admin_router", "appointments_router", "chats_router", "realtime_router"]
