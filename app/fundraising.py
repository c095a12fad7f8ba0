"""
Give-or-Get ledger for board members.

The three aggregates (raised, personal_contribution, fundraised) only ever
move through log_donation, which appends the matching donation_log entry in
the same write. So at all times:

    raised == personal_contribution + fundraised == sum(donation_log.amount)
"""

import datetime as dt
import logging
import uuid
from collections.abc import Callable
from decimal import Decimal, InvalidOperation

from app.database import InMemoryKeyValueDatabase
from app.errors import InvalidAmount, NotFound, ValidationError
from app.models import (
    DonationEntry,
    DonationType,
    GiveOrGetProgress,
    OutreachEntry,
    OutreachMethod,
    Prospect,
    ProspectStatus,
    Volunteer,
)
from app.roles import GIVE_OR_GET_ROLES
from app.schemas import ProspectCreate
from app.volunteers import volunteer_key

logger = logging.getLogger(__name__)

NowFn = Callable[[], dt.datetime]


def ledger_key(person_id: str) -> str:
    return f"ledger:{person_id}"


def as_amount(value: Decimal | int | float | str, what: str) -> Decimal:
    """
    Normalize a money value to Decimal, refusing anything that is not a
    finite, positive amount. Floats go through str() so 0.1 stays 0.1.
    """
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation:
        raise InvalidAmount(f"{what} must be a number") from None
    if not amount.is_finite() or amount <= 0:
        raise InvalidAmount(f"{what} must be greater than zero")
    return amount


def _find_prospect(ledger: GiveOrGetProgress, prospect_id: str) -> Prospect:
    for prospect in ledger.prospects:
        if prospect.id == prospect_id:
            return prospect
    raise NotFound(f"Prospect {prospect_id} not found")


class FundraisingLedger:
    def __init__(
        self, db: InMemoryKeyValueDatabase[str, object], *, now_fn: NowFn
    ) -> None:
        self.db = db
        self.now_fn = now_fn

    def get_ledger(self, person_id: str) -> GiveOrGetProgress:
        """Return the person's ledger, opening an empty one on first access."""
        volunteer = self.db.get(volunteer_key(person_id))
        if not isinstance(volunteer, Volunteer):
            raise NotFound(f"Volunteer {person_id} not found")
        if volunteer.authoritative_role not in GIVE_OR_GET_ROLES:
            raise ValidationError("Give-or-Get applies to board members only")

        ledger = self.db.get(ledger_key(person_id))
        if not isinstance(ledger, GiveOrGetProgress):
            ledger = GiveOrGetProgress(person_id=person_id)
            self.db.put(ledger_key(person_id), ledger)
        return ledger

    def _mutate(
        self, person_id: str, mutate: Callable[[GiveOrGetProgress], None]
    ) -> GiveOrGetProgress:
        self.get_ledger(person_id)
        updated = self.db.update(ledger_key(person_id), mutate)
        if not isinstance(updated, GiveOrGetProgress):
            raise NotFound(f"Ledger for {person_id} not found")
        return updated

    def set_goal(
        self, person_id: str, amount: Decimal | int | float
    ) -> GiveOrGetProgress:
        amount = as_amount(amount, "Goal")

        def _set(ledger: GiveOrGetProgress) -> None:
            if ledger.donation_log and ledger.goal > 0:
                logger.warning(
                    "goal for %s reset from %s to %s after donations were logged",
                    person_id,
                    ledger.goal,
                    amount,
                )
            ledger.goal = amount

        return self._mutate(person_id, _set)

    def add_prospect(self, person_id: str, data: ProspectCreate) -> Prospect:
        if not data.name.strip():
            raise ValidationError("Prospect name is required")
        amount = as_amount(data.amount, "Prospect amount")

        prospect = Prospect(
            id=str(uuid.uuid4()),
            **data.model_dump(exclude={"name", "amount"}),
            name=data.name.strip(),
            amount=amount,
        )
        self._mutate(person_id, lambda ledger: ledger.prospects.append(prospect))
        return prospect

    def remove_prospect(self, person_id: str, prospect_id: str) -> GiveOrGetProgress:
        def _remove(ledger: GiveOrGetProgress) -> None:
            prospect = _find_prospect(ledger, prospect_id)
            ledger.prospects.remove(prospect)

        return self._mutate(person_id, _remove)

    def update_prospect_status(
        self, person_id: str, prospect_id: str, status: ProspectStatus
    ) -> Prospect:
        # funnel order is not enforced here
        def _update(ledger: GiveOrGetProgress) -> None:
            _find_prospect(ledger, prospect_id).status = status

        ledger = self._mutate(person_id, _update)
        return _find_prospect(ledger, prospect_id)

    def log_outreach(
        self,
        person_id: str,
        prospect_id: str,
        method: OutreachMethod,
        notes: str | None = None,
        *,
        request_id: str | None = None,
    ) -> Prospect:
        def _log(ledger: GiveOrGetProgress) -> None:
            prospect = _find_prospect(ledger, prospect_id)
            if request_id and any(e.id == request_id for e in prospect.outreach_log):
                return
            prospect.outreach_log.append(
                OutreachEntry(
                    id=request_id or str(uuid.uuid4()),
                    date=self.now_fn(),
                    method=method,
                    notes=notes,
                )
            )
            if prospect.status == ProspectStatus.IDENTIFIED:
                prospect.status = ProspectStatus.CONTACTED

        ledger = self._mutate(person_id, _log)
        return _find_prospect(ledger, prospect_id)

    def log_donation(
        self,
        person_id: str,
        amount: Decimal | int | float,
        type: DonationType,
        note: str | None = None,
        *,
        request_id: str | None = None,
    ) -> GiveOrGetProgress:
        amount = as_amount(amount, "Donation amount")

        def _log(ledger: GiveOrGetProgress) -> None:
            if request_id and any(e.id == request_id for e in ledger.donation_log):
                logger.info("donation %s already logged for %s", request_id, person_id)
                return
            ledger.donation_log.append(
                DonationEntry(
                    id=request_id or str(uuid.uuid4()),
                    date=self.now_fn(),
                    amount=amount,
                    type=type,
                    note=note,
                )
            )
            if type == DonationType.PERSONAL:
                ledger.personal_contribution += amount
            else:
                ledger.fundraised += amount
            ledger.raised += amount

        ledger = self._mutate(person_id, _log)
        logger.info(
            "donation logged for %s: %s %s (raised %s)",
            person_id,
            type,
            amount,
            ledger.raised,
        )
        return ledger
