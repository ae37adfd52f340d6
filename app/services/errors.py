from uuid import UUID

from app.domain.enums import AssignmentAction, ConversationStatus


class ConversationNotFoundError(LookupError):
    def __init__(self, conversation_id: UUID) -> None:
        super().__init__(f"Conversation '{conversation_id}' not found")
        self.conversation_id = conversation_id


class MessageNotFoundError(LookupError):
    def __init__(self, message_id: UUID) -> None:
        super().__init__(f"Message '{message_id}' not found")
        self.message_id = message_id


class InvalidTransitionError(ValueError):
    def __init__(
        self,
        conversation_id: UUID,
        status: ConversationStatus,
        action: AssignmentAction,
    ) -> None:
        super().__init__(
            f"Cannot {action.value} conversation '{conversation_id}': "
            f"it is '{status.value}'."
        )
        self.conversation_id = conversation_id
        self.status = status
        self.action = action


class AlreadyClaimedError(ValueError):
    def __init__(self, conversation_id: UUID, expert_username: str | None) -> None:
        super().__init__(
            f"Conversation '{conversation_id}' is already claimed by expert "
            f"'{expert_username or 'unknown'}'"
        )
        self.conversation_id = conversation_id
        self.expert_username = expert_username


class NotOwnerError(PermissionError):
    def __init__(self, conversation_id: UUID, expert_id: UUID) -> None:
        super().__init__(
            f"Conversation '{conversation_id}' is not assigned to expert '{expert_id}'"
        )
        self.conversation_id = conversation_id
        self.expert_id = expert_id


class NotExpertError(PermissionError):
    def __init__(self, user_id: UUID) -> None:
        super().__init__(f"User '{user_id}' is not a registered expert")
        self.user_id = user_id


class ConversationAccessDeniedError(PermissionError):
    def __init__(self, conversation_id: UUID, user_id: UUID) -> None:
        super().__init__(
            f"Conversation '{conversation_id}' is not accessible by user '{user_id}'"
        )
        self.conversation_id = conversation_id
        self.user_id = user_id


class ConversationClosedError(ValueError):
    def __init__(self, conversation_id: UUID) -> None:
        super().__init__(f"Conversation '{conversation_id}' is resolved and read-only")
        self.conversation_id = conversation_id


class ContentionError(RuntimeError):
    def __init__(self, conversation_id: UUID, attempts: int) -> None:
        super().__init__(
            f"Conversation '{conversation_id}' was modified concurrently; "
            f"gave up after {attempts} attempt(s)"
        )
        self.conversation_id = conversation_id
        self.attempts = attempts


class StorageFailureError(RuntimeError):
    def __init__(self, operation: str) -> None:
        super().__init__(f"Storage unavailable during '{operation}'")
        self.operation = operation


class AuthenticationError(PermissionError):
    def __init__(self, detail: str = "Invalid username or password") -> None:
        super().__init__(detail)


class UsernameTakenError(ValueError):
    def __init__(self, username: str) -> None:
        super().__init__(f"Username '{username}' is already taken")
        self.username = username


class RoleNotAllowedError(PermissionError):
    def __init__(self, user_id: UUID, action: str) -> None:
        super().__init__(f"User '{user_id}' is not allowed to {action}")
        self.user_id = user_id
        self.action = action
