"""Role-keyed authorization policy for scheduling operations."""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from app.core.exceptions import ForbiddenException
from app.schemas.users import Actor, Role


class Operation(str, Enum):
    """Operations guarded by the policy table."""

    BOOK = "book"
    CANCEL = "cancel"
    MARK_NO_SHOW = "mark_no_show"
    COMPLETE = "complete"
    UPDATE_VISIT_NOTES = "update_visit_notes"
    VIEW_AVAILABILITY = "view_availability"
    VIEW_APPOINTMENT = "view_appointment"
    LIST_APPOINTMENTS_BY_DATE = "list_appointments_by_date"
    LIST_APPOINTMENTS_BY_PATIENT = "list_appointments_by_patient"
    LIST_VISITS_BY_PATIENT = "list_visits_by_patient"


@dataclass(frozen=True)
class Decision:
    """Outcome of an authorization check."""

    allowed: bool
    reason: str | None = None


# A rule receives the actor and the patient the operation targets
Rule = Callable[[Actor, UUID | None], Decision]

ALLOW = Decision(allowed=True)


def allow(actor: Actor, target_patient_id: UUID | None) -> Decision:
    """Rule that always permits."""
    return ALLOW


def deny(reason: str) -> Rule:
    """Rule that always refuses with the given reason."""

    def rule(actor: Actor, target_patient_id: UUID | None) -> Decision:
        return Decision(allowed=False, reason=reason)

    return rule


def only_self(reason: str) -> Rule:
    """Rule that permits only when the actor is the target patient."""

    def rule(actor: Actor, target_patient_id: UUID | None) -> Decision:
        if target_patient_id is not None and actor.id == target_patient_id:
            return ALLOW
        return Decision(allowed=False, reason=reason)

    return rule


POLICY: dict[Operation, dict[Role, Rule]] = {
    Operation.BOOK: {
        Role.PATIENT: only_self("Patients can only book appointments for themselves"),
        Role.RECEPTIONIST: allow,
        Role.DOCTOR: deny("Doctors cannot book appointments"),
    },
    Operation.CANCEL: {
        Role.PATIENT: only_self("Patients can only cancel their own appointments"),
        Role.RECEPTIONIST: allow,
        Role.DOCTOR: deny("Doctors cannot cancel appointments"),
    },
    Operation.MARK_NO_SHOW: {
        Role.RECEPTIONIST: allow,
    },
    Operation.COMPLETE: {
        Role.DOCTOR: allow,
    },
    Operation.UPDATE_VISIT_NOTES: {
        Role.DOCTOR: allow,
    },
    Operation.VIEW_AVAILABILITY: {
        Role.PATIENT: allow,
        Role.RECEPTIONIST: allow,
    },
    Operation.VIEW_APPOINTMENT: {
        Role.PATIENT: only_self("Patients can only view their own appointments"),
        Role.RECEPTIONIST: allow,
        Role.DOCTOR: allow,
    },
    Operation.LIST_APPOINTMENTS_BY_DATE: {
        Role.RECEPTIONIST: allow,
        Role.DOCTOR: allow,
    },
    Operation.LIST_APPOINTMENTS_BY_PATIENT: {
        Role.PATIENT: only_self("Patients can only list their own appointments"),
        Role.RECEPTIONIST: allow,
    },
    Operation.LIST_VISITS_BY_PATIENT: {
        Role.PATIENT: only_self("Patients can only list their own visits"),
        Role.DOCTOR: allow,
    },
}


class BookingAuthorizer:
    """Evaluates the policy table before any mutation happens."""

    def __init__(self, policy: dict[Operation, dict[Role, Rule]] | None = None):
        self.policy = policy if policy is not None else POLICY

    def authorize(
        self,
        operation: Operation,
        actor: Actor,
        target_patient_id: UUID | None = None,
    ) -> Decision:
        """
        Decide whether the actor may perform the operation.

        Roles missing from an operation's row are denied.
        """
        rule = self.policy.get(operation, {}).get(actor.role)
        if rule is None:
            return Decision(
                allowed=False,
                reason=f"Role '{actor.role.value}' may not perform '{operation.value}'",
            )
        return rule(actor, target_patient_id)

    def require(
        self,
        operation: Operation,
        actor: Actor,
        target_patient_id: UUID | None = None,
    ) -> None:
        """Raise ForbiddenException unless the actor is allowed."""
        decision = self.authorize(operation, actor, target_patient_id)
        if not decision.allowed:
            raise ForbiddenException(decision.reason or "Forbidden")
