from app.domain.enums import AssignmentAction, AssignmentStatus, ConversationStatus
from app.domain.exceptions import InvalidAssignmentTransition


class AssignmentLifecycle:
    """State machine for conversation assignment: waiting <-> active -> resolved."""

    _allowed_transitions: dict[tuple[ConversationStatus, AssignmentAction], ConversationStatus] = {
        (ConversationStatus.WAITING, AssignmentAction.CLAIM): ConversationStatus.ACTIVE,
        (ConversationStatus.ACTIVE, AssignmentAction.UNCLAIM): ConversationStatus.WAITING,
        (ConversationStatus.ACTIVE, AssignmentAction.RESOLVE): ConversationStatus.RESOLVED,
    }

    # Status the open ledger entry is closed with when leaving ACTIVE.
    _ledger_close_status: dict[AssignmentAction, AssignmentStatus] = {
        AssignmentAction.UNCLAIM: AssignmentStatus.UNASSIGNED,
        AssignmentAction.RESOLVE: AssignmentStatus.RESOLVED,
    }

    @classmethod
    def transition(cls, current: ConversationStatus, action: AssignmentAction) -> ConversationStatus:
        next_state = cls._allowed_transitions.get((current, action))
        if not next_state:
            raise InvalidAssignmentTransition(current=current, action=action)
        return next_state

    @classmethod
    def ledger_close_status(cls, action: AssignmentAction) -> AssignmentStatus:
        try:
            return cls._ledger_close_status[action]
        except KeyError:
            raise ValueError(f"Action '{action.value}' does not close an assignment.") from None

    @staticmethod
    def is_terminal(status: ConversationStatus) -> bool:
        return status == ConversationStatus.RESOLVED

    @staticmethod
    def is_claimable(status: ConversationStatus) -> bool:
        return status == ConversationStatus.WAITING

    @staticmethod
    def keeps_assignee(status: ConversationStatus) -> bool:
        return status in (ConversationStatus.ACTIVE, ConversationStatus.RESOLVED)
