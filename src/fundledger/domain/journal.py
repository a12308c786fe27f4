"""Journal (ledger entry) domain service.

Journals move through a fixed lifecycle::

    draft -> review -> approved -> posted
                    \\-> rejected    posted -> approved (unpost)

Only the creator may edit, delete or submit a draft, and the creator may
never review their own journal. Only posted journals contribute to balances.
"""

from datetime import date, datetime, time, UTC
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional, Union

from fundledger.config import LedgerConfig
from fundledger.database.base import Database
from fundledger.domain.entities import (
    ZERO,
    DimensionKind,
    Journal as JournalEntity,
    JournalEvent,
    JournalLineInput,
    JournalStatus,
    JournalTransition,
    Page,
    PageRequest,
    ReviewAction,
)
from fundledger.domain.errors import (
    AccountNotPostableError,
    DuplicateSequenceError,
    FiscalYearClosedError,
    ForbiddenError,
    InvalidLineError,
    InvalidTransitionError,
    JournalNotPostableError,
    NotFoundError,
    SelfReviewError,
    UnbalancedJournalError,
    ValidationError,
    account_not_found,
    branch_not_found,
    dimension_not_found,
    invalid_transition,
    journal_in_closed_year,
    journal_not_found,
)
from fundledger.domain.pagination import resolve_page_request
from fundledger.domain.validation import coerce_enum, optional_text, require_text, to_amount
from fundledger.logging_config import LogContext, get_logger

logger = get_logger("journals")

ALLOWED_TRANSITIONS: dict[JournalStatus, frozenset[JournalStatus]] = {
    JournalStatus.DRAFT: frozenset({JournalStatus.REVIEW}),
    JournalStatus.REVIEW: frozenset({JournalStatus.APPROVED, JournalStatus.REJECTED}),
    JournalStatus.APPROVED: frozenset({JournalStatus.POSTED}),
    JournalStatus.POSTED: frozenset({JournalStatus.APPROVED}),
    JournalStatus.REJECTED: frozenset(),
}

MIN_LINES = 2


def can_transition(from_status: JournalStatus, to_status: JournalStatus) -> bool:
    """Whether the lifecycle permits moving from one status to another."""
    return to_status in ALLOWED_TRANSITIONS[from_status]


def _now() -> datetime:
    return datetime.now(UTC)


class JournalService:
    """Service for creating journals and moving them through their lifecycle."""

    def __init__(self, db: Database, config: Optional[LedgerConfig] = None):
        """Initialize journal service.

        Args:
            db: Database instance
            config: Ledger configuration (journal prefix, retry limit, paging)
        """
        self.db = db
        self.config = config or LedgerConfig()

    def create_journal(
        self,
        branch_id: int,
        journal_date: date,
        description: str,
        lines: Iterable[Union[JournalLineInput, Mapping[str, Any]]],
        actor: str,
        reference_no: Optional[str] = None,
    ) -> int:
        """Create a draft journal.

        The journal number is ``<prefix>/<branch code>/<YYYYMM>/<NNNN>``, with
        the sequence allocated per branch and month.

        Args:
            branch_id: Branch the journal belongs to
            journal_date: Business date of the entry
            description: Free-text description
            lines: At least two lines, each with exactly one of debit/credit
            actor: Identity of the creating user
            reference_no: Optional external reference

        Returns:
            Journal ID

        Raises:
            NotFoundError: If the branch, an account or a dimension is missing
            InvalidLineError: If fewer than two lines are given or a line has
                both or neither of debit/credit
            AccountNotPostableError: If a line targets a header or inactive account
            UnbalancedJournalError: If total debit differs from total credit
            DuplicateSequenceError: If number allocation kept colliding
        """
        actor = require_text(actor, "Actor")
        branch = self.db.get_branch(branch_id)
        if branch is None:
            raise NotFoundError(branch_not_found(branch_id))
        if not branch.is_active:
            raise ValidationError(f"Branch {branch.code} is inactive")
        description = require_text(description, "Journal description")
        line_inputs, total_debit, total_credit = self._validate_lines(lines)

        number_prefix = f"{self.config.journal_prefix}/{branch.code}/{journal_date:%Y%m}"
        limit = self.config.sequence_retry_limit
        for attempt in range(1, limit + 1):
            try:
                journal_id = self.db.create_journal(
                    number_prefix=number_prefix,
                    branch_id=branch_id,
                    journal_date=journal_date,
                    description=description,
                    reference_no=optional_text(reference_no),
                    created_by=actor,
                    total_debit=total_debit,
                    total_credit=total_credit,
                    lines=line_inputs,
                )
                break
            except DuplicateSequenceError:
                if attempt == limit:
                    logger.warning(
                        "Journal number allocation failed after %d attempts", attempt,
                        extra={"number_prefix": number_prefix},
                    )
                    raise
                logger.warning(
                    "Journal number collision, retrying (%d/%d)", attempt, limit,
                    extra={"number_prefix": number_prefix},
                )

        with LogContext.bind(actor=actor, journal_id=journal_id, operation="create"):
            logger.info(
                "Created journal under %s",
                number_prefix,
                extra={"total": str(total_debit), "line_count": len(line_inputs)},
            )
        return journal_id

    def get_journal(self, journal_id: int) -> Optional[JournalEntity]:
        """Get journal with its lines, or None if not found."""
        return self.db.get_journal(journal_id)

    def get_journal_by_number(self, journal_number: str) -> Optional[JournalEntity]:
        """Get journal with its lines by journal number."""
        return self.db.get_journal_by_number(journal_number.strip())

    def require_journal(self, journal_id: int) -> JournalEntity:
        """Get journal by ID, raising NotFoundError when missing."""
        journal = self.db.get_journal(journal_id)
        if journal is None:
            raise NotFoundError(journal_not_found(journal_id))
        return journal

    def list_journals(
        self,
        page: Optional[PageRequest] = None,
        status: Union[JournalStatus, str, None] = None,
        branch_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Page[JournalEntity]:
        """List one page of journal headers, newest first by default.

        Sortable by journal_date, journal_number, status, total_debit and
        created_at.
        """
        request = resolve_page_request(page, self.config)
        if status is not None:
            status = coerce_enum(JournalStatus, status, "status")
        if start_date is not None and end_date is not None and start_date > end_date:
            raise ValidationError("Start date must be on or before end date")
        return self.db.list_journals(
            page=request.page,
            page_size=request.page_size,
            sort=request.sort,
            status=status,
            branch_id=branch_id,
            start_date=start_date,
            end_date=end_date,
        )

    def get_journal_history(self, journal_id: int) -> list[JournalEvent]:
        """Return the recorded events of a journal, oldest first.

        History is kept for deleted drafts too, so a missing journal is not
        an error.
        """
        return self.db.list_journal_events(journal_id)

    def update_journal(
        self,
        journal_id: int,
        actor: str,
        journal_date: date,
        description: str,
        lines: Iterable[Union[JournalLineInput, Mapping[str, Any]]],
        reference_no: Optional[str] = None,
    ) -> JournalEntity:
        """Replace the contents of a draft journal.

        All lines are replaced in one transaction. The journal number is kept
        even when the date moves to another month.

        Returns:
            The updated journal

        Raises:
            InvalidTransitionError: If the journal is not a draft
            ForbiddenError: If the actor did not create the journal
            (plus every validation error of create_journal)
        """
        actor = require_text(actor, "Actor")
        journal = self._require_own_draft(journal_id, actor, "update")
        description = require_text(description, "Journal description")
        line_inputs, total_debit, total_credit = self._validate_lines(lines)

        self.db.replace_journal(
            journal_id,
            actor=actor,
            journal_date=journal_date,
            description=description,
            reference_no=optional_text(reference_no),
            total_debit=total_debit,
            total_credit=total_credit,
            lines=line_inputs,
        )
        with LogContext.bind(actor=actor, journal_id=journal_id, operation="update"):
            logger.info("Updated journal %s", journal.journal_number)
        return self.require_journal(journal_id)

    def delete_journal(self, journal_id: int, actor: str) -> None:
        """Delete a draft journal.

        Raises:
            NotFoundError: If the journal does not exist
            InvalidTransitionError: If the journal is not a draft
            ForbiddenError: If the actor did not create the journal
        """
        actor = require_text(actor, "Actor")
        journal = self._require_own_draft(journal_id, actor, "delete")
        self.db.delete_journal(journal_id, actor=actor)
        with LogContext.bind(actor=actor, journal_id=journal_id, operation="delete"):
            logger.info("Deleted journal %s", journal.journal_number)

    def submit_for_review(self, journal_id: int, actor: str) -> JournalEntity:
        """Move a draft journal to review.

        Raises:
            InvalidTransitionError: If the journal is not a draft
            ForbiddenError: If the actor did not create the journal
            UnbalancedJournalError: If the stored lines do not balance
        """
        actor = require_text(actor, "Actor")
        journal = self._require_own_draft(journal_id, actor, "submit")
        if len(journal.lines) < MIN_LINES:
            raise InvalidLineError(
                f"Journal {journal.journal_number} needs at least {MIN_LINES} lines to be submitted"
            )
        total_debit, total_credit = self._line_totals(journal)
        if total_debit != total_credit:
            raise UnbalancedJournalError(total_debit, total_credit)

        return self._transition(journal, JournalTransition.SUBMITTED, JournalStatus.REVIEW, actor, {})

    def review_journal(
        self,
        journal_id: int,
        actor: str,
        action: Union[ReviewAction, str],
        notes: Optional[str] = None,
    ) -> JournalEntity:
        """Approve or reject a journal under review.

        Args:
            journal_id: Journal to review
            actor: Reviewer identity; must differ from the creator
            action: "approve" or "reject"
            notes: Review notes; stored as the rejection reason on reject

        Raises:
            ValidationError: If the action is unknown
            InvalidTransitionError: If the journal is not under review
            SelfReviewError: If the reviewer created the journal
        """
        actor = require_text(actor, "Actor")
        action = coerce_enum(ReviewAction, action, "review action")
        journal = self.require_journal(journal_id)
        operation = action.value
        if journal.status != JournalStatus.REVIEW:
            raise InvalidTransitionError(invalid_transition(journal.journal_number, journal.status.value, operation))
        if journal.created_by == actor:
            logger.warning(
                "Rejected self-review of journal %s", journal.journal_number,
                extra={"actor": actor, "journal_id": journal_id},
            )
            raise SelfReviewError(
                f"{actor} created journal {journal.journal_number} and cannot review it"
            )

        now = _now()
        fields: dict[str, Any] = {"reviewed_by": actor, "reviewed_at": now}
        notes = optional_text(notes)
        if action == ReviewAction.APPROVE:
            fields.update(approved_by=actor, approved_at=now)
            return self._transition(
                journal, JournalTransition.APPROVED, JournalStatus.APPROVED, actor, fields, notes
            )
        fields.update(rejected_by=actor, rejected_at=now, reject_reason=notes)
        return self._transition(journal, JournalTransition.REJECTED, JournalStatus.REJECTED, actor, fields, notes)

    def post_journal(
        self,
        journal_id: int,
        actor: str,
        post_date: Union[datetime, date, None] = None,
    ) -> JournalEntity:
        """Post an approved journal to the ledger.

        Args:
            journal_id: Journal to post
            actor: Identity of the posting user
            post_date: Posting timestamp (defaults to now; a date means midnight UTC)

        Raises:
            InvalidTransitionError: If the journal is not approved (including
                when it is already posted)
            JournalNotPostableError: If it has no lines or no longer balances
            FiscalYearClosedError: If its date falls in a closed fiscal year
        """
        actor = require_text(actor, "Actor")
        journal = self.require_journal(journal_id)
        if journal.status != JournalStatus.APPROVED:
            raise InvalidTransitionError(invalid_transition(journal.journal_number, journal.status.value, "post"))
        if not journal.lines:
            raise JournalNotPostableError(f"Journal {journal.journal_number} has no lines")
        total_debit, total_credit = self._line_totals(journal)
        if total_debit != total_credit or not journal.is_balanced:
            raise JournalNotPostableError(
                f"Journal {journal.journal_number} is not balanced: "
                f"debit {total_debit} != credit {total_credit}"
            )
        self._check_fiscal_year_open(journal)

        if post_date is None:
            posted_at = _now()
        elif isinstance(post_date, datetime):
            posted_at = post_date
        else:
            posted_at = datetime.combine(post_date, time.min, tzinfo=UTC)

        fields = {"is_posted": True, "posted_at": posted_at, "posted_by": actor}
        return self._transition(journal, JournalTransition.POSTED, JournalStatus.POSTED, actor, fields)

    def unpost_journal(self, journal_id: int, actor: str) -> JournalEntity:
        """Take a posted journal off the ledger, returning it to approved.

        Raises:
            InvalidTransitionError: If the journal is not posted
            FiscalYearClosedError: If its date falls in a closed fiscal year
        """
        actor = require_text(actor, "Actor")
        journal = self.require_journal(journal_id)
        if journal.status != JournalStatus.POSTED or not journal.is_posted:
            raise InvalidTransitionError(invalid_transition(journal.journal_number, journal.status.value, "unpost"))
        self._check_fiscal_year_open(journal)

        fields = {"is_posted": False, "posted_at": None, "posted_by": None}
        return self._transition(journal, JournalTransition.UNPOSTED, JournalStatus.APPROVED, actor, fields)

    def _transition(
        self,
        journal: JournalEntity,
        transition: JournalTransition,
        to_status: JournalStatus,
        actor: str,
        fields: dict[str, Any],
        notes: Optional[str] = None,
    ) -> JournalEntity:
        if not can_transition(journal.status, to_status):
            raise InvalidTransitionError(
                invalid_transition(journal.journal_number, journal.status.value, transition.value)
            )
        self.db.apply_journal_transition(
            journal.id,
            transition=transition,
            from_status=journal.status,
            to_status=to_status,
            actor=actor,
            fields=fields,
            notes=notes,
        )
        with LogContext.bind(actor=actor, journal_id=journal.id, operation=transition.value):
            logger.info(
                "Journal %s %s -> %s",
                journal.journal_number,
                journal.status.value,
                to_status.value,
            )
        return self.require_journal(journal.id)

    def _require_own_draft(self, journal_id: int, actor: str, operation: str) -> JournalEntity:
        journal = self.require_journal(journal_id)
        if journal.status != JournalStatus.DRAFT:
            raise InvalidTransitionError(invalid_transition(journal.journal_number, journal.status.value, operation))
        if journal.created_by != actor:
            logger.warning(
                "Rejected %s of journal %s by non-creator", operation, journal.journal_number,
                extra={"actor": actor, "journal_id": journal_id},
            )
            raise ForbiddenError(
                f"Only the creator ({journal.created_by}) may {operation} journal {journal.journal_number}"
            )
        return journal

    def _check_fiscal_year_open(self, journal: JournalEntity) -> None:
        year = self.db.find_fiscal_year_for_date(journal.journal_date)
        if year is not None and year.is_closed:
            raise FiscalYearClosedError(
                journal_in_closed_year(journal.journal_number, journal.journal_date, year.name)
            )

    @staticmethod
    def _line_totals(journal: JournalEntity) -> tuple[Decimal, Decimal]:
        total_debit = sum((line.debit for line in journal.lines), ZERO)
        total_credit = sum((line.credit for line in journal.lines), ZERO)
        return total_debit, total_credit

    def _validate_lines(
        self, lines: Iterable[Union[JournalLineInput, Mapping[str, Any]]]
    ) -> tuple[list[JournalLineInput], Decimal, Decimal]:
        """Validate journal lines and return them normalized with their totals."""
        raw_lines = [line if isinstance(line, JournalLineInput) else self._line_from_mapping(line) for line in lines]
        if len(raw_lines) < MIN_LINES:
            raise InvalidLineError(f"A journal requires at least {MIN_LINES} lines, got {len(raw_lines)}")

        validated: list[JournalLineInput] = []
        total_debit = ZERO
        total_credit = ZERO
        for index, line in enumerate(raw_lines, start=1):
            account = self.db.get_account(line.account_id)
            if account is None:
                raise NotFoundError(account_not_found(line.account_id))
            if not account.can_post:
                raise AccountNotPostableError(account.code)

            debit = to_amount(line.debit, f"Line {index} debit")
            credit = to_amount(line.credit, f"Line {index} credit")
            if debit < 0 or credit < 0:
                raise InvalidLineError(f"Line {index}: debit and credit must not be negative")
            if (debit > 0) == (credit > 0):
                raise InvalidLineError(f"Line {index}: exactly one of debit or credit must be non-zero")

            for kind, dimension_id in (
                (DimensionKind.FUND, line.fund_id),
                (DimensionKind.PROGRAM, line.program_id),
                (DimensionKind.DONOR, line.donor_id),
            ):
                if dimension_id is None:
                    continue
                dimension = self.db.get_dimension(kind, dimension_id)
                if dimension is None:
                    raise NotFoundError(dimension_not_found(kind.value, dimension_id))
                if not dimension.is_active:
                    raise InvalidLineError(f"Line {index}: {kind.value} {dimension.code} is inactive")

            validated.append(
                JournalLineInput(
                    account_id=line.account_id,
                    debit=debit,
                    credit=credit,
                    description=optional_text(line.description),
                    fund_id=line.fund_id,
                    program_id=line.program_id,
                    donor_id=line.donor_id,
                )
            )
            total_debit += debit
            total_credit += credit

        if total_debit != total_credit:
            raise UnbalancedJournalError(total_debit, total_credit)
        return validated, total_debit, total_credit

    @staticmethod
    def _line_from_mapping(data: Mapping[str, Any]) -> JournalLineInput:
        if "account_id" not in data:
            raise InvalidLineError("Every line needs an account_id")
        return JournalLineInput(
            account_id=data["account_id"],
            debit=data.get("debit") or ZERO,
            credit=data.get("credit") or ZERO,
            description=data.get("description"),
            fund_id=data.get("fund_id"),
            program_id=data.get("program_id"),
            donor_id=data.get("donor_id"),
        )
