from app.domain.enums import AssignmentAction, ConversationStatus


class InvalidAssignmentTransition(ValueError):
    def __init__(self, current: ConversationStatus, action: AssignmentAction) -> None:
        super().__init__(
            f"Cannot apply action '{action.value}' from state '{current.value}'."
        )
        self.current = current
        self.action = action
