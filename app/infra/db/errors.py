from uuid import UUID


class VersionConflictError(RuntimeError):
    def __init__(self, conversation_id: UUID, expected_version: int) -> None:
        super().__init__(
            f"Conversation '{conversation_id}' no longer at version {expected_version}"
        )
        self.conversation_id = conversation_id
        self.expected_version = expected_version


class NoActiveAssignmentError(LookupError):
    def __init__(self, conversation_id: UUID) -> None:
        super().__init__(f"Conversation '{conversation_id}' has no active assignment")
        self.conversation_id = conversation_id
