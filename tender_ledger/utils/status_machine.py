"""
Status state machines - legal status moves for tenders and bids
"""
from typing import Iterator, List, Tuple


class TenderStatus:
    """Valid tender status values"""
    CREATED = "Created"
    PUBLISHED = "Published"
    CLOSED = "Closed"


class BidStatus:
    """Valid bid status values"""
    CREATED = "Created"
    PUBLISHED = "Published"
    CANCELED = "Canceled"
    # Decision outcomes, assigned only through a decision
    APPROVED = "Approved"
    REJECTED = "Rejected"


class StatusMachine:
    """
    Table-driven status graph.

    Subclasses declare ``INITIAL`` and ``TRANSITIONS``; a status with an empty
    target list is terminal. Everything here is pure lookups.
    """

    INITIAL: str = ""
    TRANSITIONS: dict = {}

    @classmethod
    def statuses(cls) -> List[str]:
        return list(cls.TRANSITIONS)

    @classmethod
    def is_known_status(cls, status: str) -> bool:
        return status in cls.TRANSITIONS

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if transition from one status to another is valid"""
        if from_status not in cls.TRANSITIONS:
            return False
        return to_status in cls.TRANSITIONS[from_status]

    @classmethod
    def get_allowed_transitions(cls, current_status: str) -> List[str]:
        """Get list of allowed status transitions from current status"""
        return list(cls.TRANSITIONS.get(current_status, []))

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> Tuple[bool, str]:
        """
        Validate a status transition.

        Staying in the same status is not a transition and is rejected.

        Returns:
            (is_valid, error_message)
        """
        if cls.is_terminal_status(from_status):
            return False, f"Cannot transition from terminal status '{from_status}'"

        if not cls.can_transition(from_status, to_status):
            allowed = cls.get_allowed_transitions(from_status)
            return False, f"Cannot transition from '{from_status}' to '{to_status}'. Allowed: {allowed}"

        return True, "Valid transition"

    @classmethod
    def is_terminal_status(cls, status: str) -> bool:
        """Check if status is terminal (no further transitions allowed)"""
        return not cls.TRANSITIONS.get(status)

    @classmethod
    def edges(cls) -> Iterator[Tuple[str, str]]:
        for from_status, targets in cls.TRANSITIONS.items():
            for to_status in targets:
                yield from_status, to_status


class TenderStateMachine(StatusMachine):
    """
    State Flow:
    Created → Published → Closed
           ↘___________↗
    """

    INITIAL = TenderStatus.CREATED
    TRANSITIONS = {
        TenderStatus.CREATED: [TenderStatus.PUBLISHED, TenderStatus.CLOSED],
        TenderStatus.PUBLISHED: [TenderStatus.CLOSED],
        TenderStatus.CLOSED: [],  # Terminal state
    }


class BidStateMachine(StatusMachine):
    """
    State Flow:
    Created → Published → Canceled
           ↘____________↗

    Approved and Rejected are terminal and only reachable through a decision,
    never through a transition request.
    """

    INITIAL = BidStatus.CREATED
    TRANSITIONS = {
        BidStatus.CREATED: [BidStatus.PUBLISHED, BidStatus.CANCELED],
        BidStatus.PUBLISHED: [BidStatus.CANCELED],
        BidStatus.CANCELED: [],  # Terminal state
        BidStatus.APPROVED: [],
        BidStatus.REJECTED: [],
    }
