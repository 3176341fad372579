# Schemas package (re-export feature modules for stable imports)
from .appointments.appointment import *
from .chats.chat import *
from .common.common import *
