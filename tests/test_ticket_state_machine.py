"""
Unit tests for the ticket state machine
"""

import pytest
from datetime import datetime, timedelta, timezone
import uuid

from queueline.core.exceptions import IllegalTransitionError
from queueline.models.ticket import (
    TICKET_TRANSITIONS,
    Ticket,
    TicketAction,
    TicketStatus,
    minutes_between,
    round_half_up,
)

T0 = datetime(2026, 3, 10, 9, 0, 0, tzinfo=timezone.utc)


def make_ticket(status: TicketStatus = TicketStatus.WAITING, **kwargs) -> Ticket:
    return Ticket(
        id=uuid.uuid4(),
        queue_id=uuid.uuid4(),
        number=1,
        status=status,
        position=1,
        created_at=T0,
        **kwargs,
    )


class TestTransitionTable:
    """Test the (status, action) -> status table"""

    def test_only_four_legal_transitions(self):
        """Test exactly the documented transitions exist"""
        assert TICKET_TRANSITIONS == {
            (TicketStatus.WAITING, TicketAction.ASSIGN): TicketStatus.SERVING,
            (TicketStatus.WAITING, TicketAction.CANCEL): TicketStatus.CANCELLED,
            (TicketStatus.SERVING, TicketAction.COMPLETE): TicketStatus.COMPLETED,
            (TicketStatus.SERVING, TicketAction.CANCEL): TicketStatus.CANCELLED,
        }

    @pytest.mark.parametrize("status", [TicketStatus.COMPLETED, TicketStatus.CANCELLED])
    def test_terminal_statuses_accept_nothing(self, status):
        """Test terminal tickets reject every action"""
        ticket = make_ticket(status)
        for action in TicketAction:
            allowed, reason = ticket.can_transition(action)
            assert allowed is False
            assert status.value in reason

    def test_serving_cannot_be_assigned_again(self):
        """Test assign is rejected for a serving ticket"""
        allowed, _ = make_ticket(TicketStatus.SERVING).can_transition(TicketAction.ASSIGN)
        assert allowed is False

    def test_waiting_cannot_complete(self):
        """Test complete requires a serving ticket"""
        ticket = make_ticket()
        with pytest.raises(IllegalTransitionError) as exc:
            ticket.mark_completed(T0)
        assert exc.value.status == "waiting"
        assert exc.value.action == "complete"
        assert ticket.status == TicketStatus.WAITING


class TestTicketLifecycle:
    """Test timestamps and wait time through the lifecycle"""

    def test_mark_serving_keeps_position(self):
        """Test assign leaves the ticket's position untouched"""
        ticket = make_ticket()
        ticket.position = 4
        ticket.mark_serving(T0)

        assert ticket.status == TicketStatus.SERVING
        assert ticket.called_at == T0
        assert ticket.position == 4

    def test_wait_time_in_whole_minutes(self):
        """Test wait time is minutes from call to completion"""
        ticket = make_ticket()
        ticket.mark_serving(T0)
        ticket.mark_completed(T0 + timedelta(minutes=7))

        assert ticket.status == TicketStatus.COMPLETED
        assert ticket.wait_time == 7
        assert ticket.completed_at == T0 + timedelta(minutes=7)

    def test_wait_time_zero_when_completed_instantly(self):
        """Test completing at the call instant records zero"""
        ticket = make_ticket()
        ticket.mark_serving(T0)
        ticket.mark_completed(T0)

        assert ticket.wait_time == 0

    def test_wait_time_zero_without_called_at(self):
        """Test a serving ticket that never recorded a call instant"""
        ticket = make_ticket(TicketStatus.SERVING)
        ticket.mark_completed(T0)

        assert ticket.wait_time == 0

    def test_wait_time_rounds_half_up(self):
        """Test 2.5 minutes rounds to 3"""
        ticket = make_ticket()
        ticket.mark_serving(T0)
        ticket.mark_completed(T0 + timedelta(minutes=2, seconds=30))

        assert ticket.wait_time == 3

    def test_cancel_returns_previous_status(self):
        """Test cancel reports the status it left"""
        waiting = make_ticket()
        serving = make_ticket(TicketStatus.SERVING)

        assert waiting.mark_cancelled(T0) == TicketStatus.WAITING
        assert serving.mark_cancelled(T0) == TicketStatus.SERVING
        assert serving.cancelled_at == T0

    def test_cancel_completed_rejected(self):
        """Test a completed ticket cannot be cancelled"""
        ticket = make_ticket(TicketStatus.COMPLETED)
        with pytest.raises(IllegalTransitionError):
            ticket.mark_cancelled(T0)
        assert ticket.cancelled_at is None

    def test_only_waiting_can_move(self):
        """Test move legality follows the waiting status"""
        assert make_ticket().can_move()[0] is True
        for status in (TicketStatus.SERVING, TicketStatus.COMPLETED, TicketStatus.CANCELLED):
            assert make_ticket(status).can_move()[0] is False


class TestRounding:
    """Test half-up rounding helpers"""

    def test_round_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4
        assert round_half_up(2.49) == 2
        assert round_half_up(0) == 0

    def test_minutes_between(self):
        assert minutes_between(T0, T0 + timedelta(seconds=89)) == 1
        assert minutes_between(T0, T0 + timedelta(seconds=90)) == 2
