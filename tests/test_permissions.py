"""Tests for the permission gate and the appointment state machine."""

from uuid import uuid4

import pytest

from app.core.exceptions import (
    InvalidTransitionException,
    NotOwnerException,
    RoleNotPermittedException,
)
from app.schemas.appointments import AppointmentStatus
from app.schemas.users import ActingUser, UserRole
from app.services.permissions import (
    DenialReason,
    Transition,
    authorize_access,
    authorize_transition,
    validate_reschedule,
    validate_status_change,
)

CUSTOMER = ActingUser(id=uuid4(), role=UserRole.CUSTOMER)
AGENT = ActingUser(id=uuid4(), role=UserRole.AGENT)
ADMIN = ActingUser(id=uuid4(), role=UserRole.ADMIN)


def appointment(status: AppointmentStatus = AppointmentStatus.PENDING, **overrides) -> dict:
    row = {
        "id": uuid4(),
        "customer_id": CUSTOMER.id,
        "agent_id": AGENT.id,
        "status": status.value,
    }
    row.update(overrides)
    return row


@pytest.mark.parametrize("transition", list(Transition))
def test_admin_is_always_allowed(transition: Transition) -> None:
    """Test that admins pass the gate even on closed appointments."""
    decision = authorize_transition(ADMIN, appointment(AppointmentStatus.CANCELLED), transition)
    assert decision.allowed


@pytest.mark.parametrize(
    "transition",
    [Transition.CONFIRM, Transition.COMPLETE, Transition.CANCEL, Transition.RESCHEDULE],
)
def test_assigned_agent_may_manage(transition: Transition) -> None:
    assert authorize_transition(AGENT, appointment(), transition).allowed


def test_unassigned_agent_is_denied_with_role_not_permitted() -> None:
    """Test that agents only manage appointments assigned to them."""
    decision = authorize_transition(AGENT, appointment(agent_id=uuid4()), Transition.CONFIRM)

    assert not decision.allowed
    assert decision.reason == DenialReason.ROLE_NOT_PERMITTED
    with pytest.raises(RoleNotPermittedException):
        decision.raise_for_denial()


def test_agent_cannot_touch_terminal_appointments() -> None:
    decision = authorize_transition(
        AGENT, appointment(AppointmentStatus.COMPLETED), Transition.CANCEL
    )

    assert decision.reason == DenialReason.ALREADY_TERMINAL
    with pytest.raises(InvalidTransitionException):
        decision.raise_for_denial()


def test_owner_may_cancel() -> None:
    """Test that the owner may cancel from every non-terminal status."""
    for status in (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED, AppointmentStatus.QUEUED):
        assert authorize_transition(CUSTOMER, appointment(status), Transition.CANCEL).allowed


@pytest.mark.parametrize(
    "transition",
    [Transition.CONFIRM, Transition.COMPLETE, Transition.RESCHEDULE],
)
def test_customer_may_only_cancel(transition: Transition) -> None:
    decision = authorize_transition(CUSTOMER, appointment(), transition)

    assert decision.reason == DenialReason.ROLE_NOT_PERMITTED


def test_customer_cannot_cancel_someone_elses_appointment() -> None:
    decision = authorize_transition(
        CUSTOMER, appointment(customer_id=uuid4()), Transition.CANCEL
    )

    assert decision.reason == DenialReason.NOT_OWNER
    with pytest.raises(NotOwnerException):
        decision.raise_for_denial()


def test_customer_cannot_cancel_a_closed_appointment() -> None:
    decision = authorize_transition(
        CUSTOMER, appointment(AppointmentStatus.CANCELLED), Transition.CANCEL
    )
    assert decision.reason == DenialReason.ALREADY_TERMINAL


@pytest.mark.parametrize("status", [AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED])
def test_customer_notes_are_frozen_once_closed(status: AppointmentStatus) -> None:
    """Test that customers cannot annotate a cancelled or completed appointment."""
    decision = authorize_transition(CUSTOMER, appointment(status), Transition.EDIT_NOTES)

    assert decision.reason == DenialReason.ALREADY_TERMINAL
    with pytest.raises(InvalidTransitionException):
        decision.raise_for_denial()


def test_staff_may_annotate_closed_appointments() -> None:
    """Test that the assigned agent and admins can still add notes after completion."""
    completed = appointment(AppointmentStatus.COMPLETED)

    assert authorize_transition(AGENT, completed, Transition.EDIT_NOTES).allowed
    assert authorize_transition(ADMIN, completed, Transition.EDIT_NOTES).allowed


def test_access_check_ignores_status() -> None:
    """Test that the ownership check alone reports who may reach an appointment."""
    for status in AppointmentStatus:
        row = appointment(status)
        assert authorize_access(CUSTOMER, row).allowed
        assert authorize_access(AGENT, row).allowed
        assert authorize_access(ADMIN, row).allowed

    stranger = ActingUser(id=uuid4(), role=UserRole.CUSTOMER)
    other_agent = ActingUser(id=uuid4(), role=UserRole.AGENT)
    assert authorize_access(stranger, appointment()).reason == DenialReason.NOT_OWNER
    assert authorize_access(other_agent, appointment()).reason == DenialReason.ROLE_NOT_PERMITTED


@pytest.mark.parametrize(
    ("current", "target"),
    [
        (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED),
        (AppointmentStatus.PENDING, AppointmentStatus.COMPLETED),
        (AppointmentStatus.PENDING, AppointmentStatus.CANCELLED),
        (AppointmentStatus.CONFIRMED, AppointmentStatus.COMPLETED),
        (AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED),
        (AppointmentStatus.QUEUED, AppointmentStatus.CANCELLED),
    ],
)
def test_reachable_status_changes(current: AppointmentStatus, target: AppointmentStatus) -> None:
    validate_status_change(current, target)


@pytest.mark.parametrize(
    ("current", "target"),
    [
        # Only promotion moves a queued appointment to confirmed
        (AppointmentStatus.QUEUED, AppointmentStatus.CONFIRMED),
        (AppointmentStatus.QUEUED, AppointmentStatus.COMPLETED),
        (AppointmentStatus.CONFIRMED, AppointmentStatus.CONFIRMED),
        (AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED),
        (AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED),
        (AppointmentStatus.CANCELLED, AppointmentStatus.CONFIRMED),
    ],
)
def test_unreachable_status_changes(current: AppointmentStatus, target: AppointmentStatus) -> None:
    """Test status changes the state machine refuses."""
    with pytest.raises(InvalidTransitionException):
        validate_status_change(current, target)


def test_terminal_appointments_cannot_be_rescheduled() -> None:
    validate_reschedule(AppointmentStatus.QUEUED)
    with pytest.raises(InvalidTransitionException):
        validate_reschedule(AppointmentStatus.COMPLETED)
