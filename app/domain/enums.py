from enum import Enum


class ConversationStatus(str, Enum):
    WAITING = "waiting"
    ACTIVE = "active"
    RESOLVED = "resolved"


class AssignmentStatus(str, Enum):
    ACTIVE = "active"
    UNASSIGNED = "unassigned"
    RESOLVED = "resolved"


class SenderRole(str, Enum):
    INITIATOR = "initiator"
    EXPERT = "expert"


class UserRole(str, Enum):
    QUESTIONER = "questioner"
    EXPERT = "expert"


class AssignmentAction(str, Enum):
    CLAIM = "claim"
    UNCLAIM = "unclaim"
    RESOLVE = "resolve"
