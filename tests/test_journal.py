"""Tests for JournalService (ledger entry state machine)."""

import pytest
from datetime import date, datetime, UTC
from decimal import Decimal

from fundledger.domain.entities import JournalLineInput, JournalStatus, JournalTransition
from fundledger.domain.errors import (
    AccountNotPostableError,
    FiscalYearClosedError,
    ForbiddenError,
    InvalidLineError,
    InvalidTransitionError,
    NotFoundError,
    SelfReviewError,
    UnbalancedJournalError,
    ValidationError,
)
from fundledger.domain.journal import ALLOWED_TRANSITIONS, can_transition

from conftest import CREATOR, REVIEWER, make_lines


@pytest.fixture
def balanced_legs(chart):
    return [(chart["1100"], "500000", "0"), (chart["4100"], "0", "500000")]


class TestCreateJournal:
    """Tests for create_journal."""

    def test_create_draft(self, journal_service, create_draft, balanced_legs):
        journal_id = create_draft(balanced_legs)
        journal = journal_service.get_journal(journal_id)
        assert journal.status == JournalStatus.DRAFT
        assert journal.total_debit == Decimal("500000.00")
        assert journal.total_credit == Decimal("500000.00")
        assert journal.created_by == CREATOR
        assert not journal.is_posted
        assert len(journal.lines) == 2
        assert journal.lines[0].account_code == "1100"

    def test_journal_number_format(self, journal_service, create_draft, balanced_legs):
        first = journal_service.get_journal(create_draft(balanced_legs))
        second = journal_service.get_journal(create_draft(balanced_legs))
        assert first.journal_number == "JE/HQ/202501/0001"
        assert second.journal_number == "JE/HQ/202501/0002"

    def test_sequence_is_per_month(self, journal_service, create_draft, balanced_legs):
        create_draft(balanced_legs, journal_date=date(2025, 1, 31))
        february = journal_service.get_journal(create_draft(balanced_legs, journal_date=date(2025, 2, 1)))
        assert february.journal_number == "JE/HQ/202502/0001"

    def test_unbalanced(self, journal_service, create_draft, chart):
        with pytest.raises(UnbalancedJournalError) as exc_info:
            create_draft([(chart["1100"], "500000", "0"), (chart["4100"], "0", "400000")])
        assert exc_info.value.total_debit == Decimal("500000.00")
        assert exc_info.value.total_credit == Decimal("400000.00")
        assert journal_service.list_journals().total == 0

    def test_single_line(self, create_draft, chart):
        with pytest.raises(InvalidLineError, match="at least 2"):
            create_draft([(chart["1100"], "100", "0")])

    def test_line_with_both_sides(self, create_draft, chart):
        with pytest.raises(InvalidLineError, match="exactly one"):
            create_draft([(chart["1100"], "100", "100"), (chart["4100"], "0", "0")])

    def test_line_with_neither_side(self, create_draft, chart):
        with pytest.raises(InvalidLineError, match="exactly one"):
            create_draft([(chart["1100"], "0", "0"), (chart["4100"], "0", "0")])

    def test_negative_amount(self, create_draft, chart):
        with pytest.raises(InvalidLineError, match="negative"):
            create_draft([(chart["1100"], "-100", "0"), (chart["4100"], "0", "-100")])

    def test_header_account_not_postable(self, create_draft, chart):
        with pytest.raises(AccountNotPostableError) as exc_info:
            create_draft([(chart["1000"], "100", "0"), (chart["4100"], "0", "100")])
        assert exc_info.value.account_code == "1000"

    def test_inactive_account_not_postable(self, account_service, create_draft, chart):
        account_service.update_account(chart["1200"], is_active=False)
        with pytest.raises(AccountNotPostableError):
            create_draft([(chart["1200"], "100", "0"), (chart["4100"], "0", "100")])

    def test_unknown_account(self, create_draft, chart):
        with pytest.raises(NotFoundError):
            create_draft([(999, "100", "0"), (chart["4100"], "0", "100")])

    def test_float_amount_rejected(self, journal_service, branch, chart):
        lines = [
            JournalLineInput(account_id=chart["1100"], debit=0.1),
            JournalLineInput(account_id=chart["4100"], credit=0.1),
        ]
        with pytest.raises(ValidationError):
            journal_service.create_journal(branch.id, date(2025, 1, 15), "Floats", lines, CREATOR)

    def test_mapping_lines(self, journal_service, branch, chart):
        journal_id = journal_service.create_journal(
            branch.id,
            date(2025, 1, 15),
            "Mapping lines",
            [
                {"account_id": chart["1100"], "debit": Decimal("10.50")},
                {"account_id": chart["4100"], "credit": "10.50"},
            ],
            CREATOR,
        )
        assert journal_service.get_journal(journal_id).total_debit == Decimal("10.50")

    def test_dimension_tags(self, journal_service, create_draft, chart, fund, program):
        journal_id = create_draft(
            [(chart["1100"], "100", "0"), (chart["4100"], "0", "100")], fund_id=fund.id, program_id=program.id
        )
        line = journal_service.get_journal(journal_id).lines[0]
        assert line.fund_id == fund.id
        assert line.program_id == program.id

    def test_unknown_dimension(self, create_draft, chart):
        with pytest.raises(NotFoundError, match="Fund"):
            create_draft([(chart["1100"], "100", "0"), (chart["4100"], "0", "100")], fund_id=999)

    def test_inactive_dimension(self, reference_service, create_draft, chart, fund):
        reference_service.update_dimension("fund", fund.id, is_active=False)
        with pytest.raises(InvalidLineError, match="inactive"):
            create_draft([(chart["1100"], "100", "0"), (chart["4100"], "0", "100")], fund_id=fund.id)

    def test_unknown_branch(self, journal_service, chart):
        with pytest.raises(NotFoundError):
            journal_service.create_journal(
                999, date(2025, 1, 15), "No branch", make_lines((chart["1100"], "1", "0"), (chart["4100"], "0", "1")),
                CREATOR,
            )


class TestDraftEditing:
    """Tests for update_journal and delete_journal."""

    def test_update_replaces_lines(self, journal_service, create_draft, chart, balanced_legs):
        journal_id = create_draft(balanced_legs)
        number = journal_service.get_journal(journal_id).journal_number
        updated = journal_service.update_journal(
            journal_id,
            CREATOR,
            journal_date=date(2025, 2, 10),
            description="Corrected",
            lines=make_lines((chart["1200"], "750", "0"), (chart["4100"], "0", "250"), (chart["4100"], "0", "500")),
        )
        assert updated.description == "Corrected"
        assert updated.journal_date == date(2025, 2, 10)
        assert updated.journal_number == number
        assert len(updated.lines) == 3
        assert updated.total_debit == Decimal("750.00")
        assert {line.account_code for line in updated.lines} == {"1200", "4100"}

    def test_update_by_other_user(self, journal_service, create_draft, balanced_legs):
        journal_id = create_draft(balanced_legs)
        with pytest.raises(ForbiddenError):
            journal_service.update_journal(
                journal_id, REVIEWER, date(2025, 1, 15), "Hijack", make_lines(*balanced_legs)
            )

    def test_update_unbalanced_keeps_original(self, journal_service, create_draft, chart, balanced_legs):
        journal_id = create_draft(balanced_legs)
        with pytest.raises(UnbalancedJournalError):
            journal_service.update_journal(
                journal_id, CREATOR, date(2025, 1, 15), "Bad",
                make_lines((chart["1100"], "10", "0"), (chart["4100"], "0", "5")),
            )
        journal = journal_service.get_journal(journal_id)
        assert journal.description == "Test journal"
        assert journal.total_debit == Decimal("500000.00")

    def test_update_after_submit(self, journal_service, create_draft, balanced_legs):
        journal_id = create_draft(balanced_legs)
        journal_service.submit_for_review(journal_id, CREATOR)
        with pytest.raises(InvalidTransitionError):
            journal_service.update_journal(
                journal_id, CREATOR, date(2025, 1, 15), "Late edit", make_lines(*balanced_legs)
            )

    def test_delete_draft(self, journal_service, create_draft, balanced_legs):
        journal_id = create_draft(balanced_legs)
        journal_service.delete_journal(journal_id, CREATOR)
        assert journal_service.get_journal(journal_id) is None

    def test_delete_by_other_user(self, journal_service, create_draft, balanced_legs):
        journal_id = create_draft(balanced_legs)
        with pytest.raises(ForbiddenError):
            journal_service.delete_journal(journal_id, REVIEWER)

    def test_delete_posted(self, journal_service, post_journal, balanced_legs):
        journal_id = post_journal(balanced_legs)
        with pytest.raises(InvalidTransitionError):
            journal_service.delete_journal(journal_id, CREATOR)


class TestWorkflow:
    """Tests for submit, review, post and unpost."""

    def test_full_lifecycle(self, journal_service, create_draft, balanced_legs):
        journal_id = create_draft(balanced_legs)

        journal = journal_service.submit_for_review(journal_id, CREATOR)
        assert journal.status == JournalStatus.REVIEW

        journal = journal_service.review_journal(journal_id, REVIEWER, "approve", notes="Looks right")
        assert journal.status == JournalStatus.APPROVED
        assert journal.approved_by == REVIEWER
        assert journal.reviewed_by == REVIEWER
        assert journal.approved_at is not None

        journal = journal_service.post_journal(journal_id, REVIEWER)
        assert journal.status == JournalStatus.POSTED
        assert journal.is_posted
        assert journal.posted_by == REVIEWER
        assert journal.posted_at is not None

        journal = journal_service.unpost_journal(journal_id, REVIEWER)
        assert journal.status == JournalStatus.APPROVED
        assert not journal.is_posted
        assert journal.posted_at is None
        assert journal.posted_by is None

    def test_reject(self, journal_service, create_draft, balanced_legs):
        journal_id = create_draft(balanced_legs)
        journal_service.submit_for_review(journal_id, CREATOR)
        journal = journal_service.review_journal(journal_id, REVIEWER, "reject", notes="Wrong account")
        assert journal.status == JournalStatus.REJECTED
        assert journal.rejected_by == REVIEWER
        assert journal.reject_reason == "Wrong account"

    def test_rejected_is_terminal(self, journal_service, create_draft, balanced_legs):
        journal_id = create_draft(balanced_legs)
        journal_service.submit_for_review(journal_id, CREATOR)
        journal_service.review_journal(journal_id, REVIEWER, "reject")
        with pytest.raises(InvalidTransitionError):
            journal_service.post_journal(journal_id, REVIEWER)
        with pytest.raises(InvalidTransitionError):
            journal_service.submit_for_review(journal_id, CREATOR)
        with pytest.raises(InvalidTransitionError):
            journal_service.review_journal(journal_id, REVIEWER, "approve")

    def test_self_review(self, journal_service, create_draft, balanced_legs):
        journal_id = create_draft(balanced_legs)
        journal_service.submit_for_review(journal_id, CREATOR)
        with pytest.raises(SelfReviewError):
            journal_service.review_journal(journal_id, CREATOR, "approve")
        with pytest.raises(ForbiddenError):
            journal_service.review_journal(journal_id, CREATOR, "reject")
        assert journal_service.get_journal(journal_id).status == JournalStatus.REVIEW

    def test_submit_by_other_user(self, journal_service, create_draft, balanced_legs):
        journal_id = create_draft(balanced_legs)
        with pytest.raises(ForbiddenError):
            journal_service.submit_for_review(journal_id, REVIEWER)

    def test_unknown_review_action(self, journal_service, create_draft, balanced_legs):
        journal_id = create_draft(balanced_legs)
        journal_service.submit_for_review(journal_id, CREATOR)
        with pytest.raises(ValidationError):
            journal_service.review_journal(journal_id, REVIEWER, "maybe")

    def test_review_draft(self, journal_service, create_draft, balanced_legs):
        journal_id = create_draft(balanced_legs)
        with pytest.raises(InvalidTransitionError):
            journal_service.review_journal(journal_id, REVIEWER, "approve")

    def test_post_draft(self, journal_service, create_draft, balanced_legs):
        journal_id = create_draft(balanced_legs)
        with pytest.raises(InvalidTransitionError):
            journal_service.post_journal(journal_id, REVIEWER)

    def test_second_post_fails(self, journal_service, post_journal, balanced_legs):
        journal_id = post_journal(balanced_legs)
        with pytest.raises(InvalidTransitionError):
            journal_service.post_journal(journal_id, REVIEWER)
        assert journal_service.get_journal(journal_id).status == JournalStatus.POSTED

    def test_unpost_unposted(self, journal_service, create_draft, balanced_legs):
        journal_id = create_draft(balanced_legs)
        with pytest.raises(InvalidTransitionError):
            journal_service.unpost_journal(journal_id, REVIEWER)

    def test_repost_after_unpost(self, journal_service, balance_service, chart, post_journal, balanced_legs):
        """Unpost then post with the same timestamp restores the posted state exactly."""
        journal_id = post_journal(balanced_legs)
        first = journal_service.get_journal(journal_id)
        as_of = date(2025, 12, 31)
        balances = {code: balance_service.account_balance(chart[code], as_of) for code in ("1100", "4100")}

        unposted = journal_service.unpost_journal(journal_id, REVIEWER)
        assert unposted.status == JournalStatus.APPROVED
        assert balance_service.account_balance(chart["1100"], as_of) == Decimal("0")

        again = journal_service.post_journal(journal_id, REVIEWER, post_date=first.posted_at)
        assert again.status == JournalStatus.POSTED
        assert again.is_posted is True
        assert again.posted_by == first.posted_by
        assert again.posted_at == first.posted_at
        assert again.lines == first.lines
        assert again.total_debit == first.total_debit
        assert {code: balance_service.account_balance(chart[code], as_of) for code in ("1100", "4100")} == balances

    def test_post_with_date(self, journal_service, create_draft, balanced_legs):
        journal_id = create_draft(balanced_legs)
        journal_service.submit_for_review(journal_id, CREATOR)
        journal_service.review_journal(journal_id, REVIEWER, "approve")
        journal = journal_service.post_journal(journal_id, REVIEWER, post_date=date(2025, 1, 20))
        assert journal.posted_at.date() == date(2025, 1, 20)

    def test_missing_journal(self, journal_service):
        with pytest.raises(NotFoundError):
            journal_service.submit_for_review(999, CREATOR)


class TestClosedFiscalYear:
    """Posting and unposting inside a closed fiscal year."""

    def test_post_in_closed_year(self, journal_service, reference_service, create_draft, fiscal_year, balanced_legs):
        journal_id = create_draft(balanced_legs)
        journal_service.submit_for_review(journal_id, CREATOR)
        journal_service.review_journal(journal_id, REVIEWER, "approve")
        reference_service.close_fiscal_year(fiscal_year.id, "controller")
        with pytest.raises(FiscalYearClosedError):
            journal_service.post_journal(journal_id, REVIEWER)

    def test_unpost_in_closed_year(self, journal_service, reference_service, post_journal, fiscal_year, balanced_legs):
        journal_id = post_journal(balanced_legs)
        reference_service.close_fiscal_year(fiscal_year.id, "controller")
        with pytest.raises(FiscalYearClosedError):
            journal_service.unpost_journal(journal_id, REVIEWER)
        assert journal_service.get_journal(journal_id).is_posted


class TestHistory:
    """Tests for the journal event log."""

    def test_events_recorded(self, journal_service, post_journal, balanced_legs):
        journal_id = post_journal(balanced_legs)
        events = journal_service.get_journal_history(journal_id)
        assert [event.transition for event in events] == [
            JournalTransition.CREATED,
            JournalTransition.SUBMITTED,
            JournalTransition.APPROVED,
            JournalTransition.POSTED,
        ]
        assert events[0].from_status is None
        assert events[0].to_status == JournalStatus.DRAFT
        assert events[0].actor == CREATOR
        assert events[-1].from_status == JournalStatus.APPROVED
        assert events[-1].to_status == JournalStatus.POSTED
        assert events[-1].snapshot["status"] == "posted"
        assert len(events[-1].snapshot["lines"]) == 2

    def test_history_survives_delete(self, journal_service, create_draft, balanced_legs):
        journal_id = create_draft(balanced_legs)
        journal_service.delete_journal(journal_id, CREATOR)
        events = journal_service.get_journal_history(journal_id)
        assert [event.transition for event in events] == [JournalTransition.CREATED, JournalTransition.DELETED]

    def test_failed_transition_not_recorded(self, journal_service, create_draft, balanced_legs):
        journal_id = create_draft(balanced_legs)
        with pytest.raises(InvalidTransitionError):
            journal_service.post_journal(journal_id, REVIEWER)
        assert len(journal_service.get_journal_history(journal_id)) == 1


class TestListJournals:
    """Tests for list_journals."""

    def test_filters(self, journal_service, create_draft, post_journal, balanced_legs):
        create_draft(balanced_legs, journal_date=date(2025, 1, 5))
        post_journal(balanced_legs, journal_date=date(2025, 2, 5))

        assert journal_service.list_journals().total == 2
        assert journal_service.list_journals(status="posted").total == 1
        assert journal_service.list_journals(status=JournalStatus.DRAFT).total == 1
        january = journal_service.list_journals(start_date=date(2025, 1, 1), end_date=date(2025, 1, 31))
        assert [j.journal_date for j in january.items] == [date(2025, 1, 5)]

    def test_newest_first(self, journal_service, create_draft, balanced_legs):
        create_draft(balanced_legs, journal_date=date(2025, 1, 5))
        create_draft(balanced_legs, journal_date=date(2025, 3, 5))
        items = journal_service.list_journals().items
        assert items[0].journal_date == date(2025, 3, 5)

    def test_invalid_range(self, journal_service):
        with pytest.raises(ValidationError):
            journal_service.list_journals(start_date=date(2025, 2, 1), end_date=date(2025, 1, 1))


class TestStateGraph:
    """Tests for the transition table."""

    def test_allowed_transitions(self):
        assert can_transition(JournalStatus.DRAFT, JournalStatus.REVIEW)
        assert can_transition(JournalStatus.REVIEW, JournalStatus.APPROVED)
        assert can_transition(JournalStatus.REVIEW, JournalStatus.REJECTED)
        assert can_transition(JournalStatus.APPROVED, JournalStatus.POSTED)
        assert can_transition(JournalStatus.POSTED, JournalStatus.APPROVED)

    def test_forbidden_transitions(self):
        assert not can_transition(JournalStatus.DRAFT, JournalStatus.POSTED)
        assert not can_transition(JournalStatus.REVIEW, JournalStatus.POSTED)
        assert not can_transition(JournalStatus.APPROVED, JournalStatus.DRAFT)
        assert ALLOWED_TRANSITIONS[JournalStatus.REJECTED] == frozenset()
