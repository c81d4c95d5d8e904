# nftmarket/services/funds_ledger.py
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from nftmarket.core.errors import InsufficientFunds, InvalidAsset
from nftmarket.models.funds import FundAllowance, FundBalance

logger = logging.getLogger(__name__)


class FundsLedger:
    """
    Wrapped-token balance/allowance book (the marketplace's payment token).

    Methods flush but never commit: they run inside the caller's unit of work
    so that a failed sale leaves every balance untouched.
    """

    # ─────────────────────────────────────────────
    # INTERNAL HELPERS
    # ─────────────────────────────────────────────

    def _balance_row(self, db: Session, token: str, account: str, *, lock: bool = False) -> Optional[FundBalance]:
        stmt = select(FundBalance).where(FundBalance.token == token, FundBalance.account == account)
        if lock:
            stmt = stmt.with_for_update()
        return db.execute(stmt).scalar_one_or_none()

    def _allowance_row(self, db: Session, token: str, owner: str, spender: str, *, lock: bool = False) -> Optional[FundAllowance]:
        stmt = select(FundAllowance).where(
            FundAllowance.token == token,
            FundAllowance.owner == owner,
            FundAllowance.spender == spender,
        )
        if lock:
            stmt = stmt.with_for_update()
        return db.execute(stmt).scalar_one_or_none()

    def _credit(self, db: Session, token: str, account: str, amount: int) -> None:
        row = self._balance_row(db, token, account, lock=True)
        if row is None:
            db.add(FundBalance(token=token, account=account, amount=amount))
        else:
            row.amount = row.amount + amount
        db.flush()

    def _debit(self, db: Session, token: str, account: str, amount: int) -> None:
        row = self._balance_row(db, token, account, lock=True)
        available = row.amount if row else 0
        if available < amount:
            raise InsufficientFunds(f"{account} holds {available}, needs {amount}.")
        row.amount = available - amount
        db.flush()

    @staticmethod
    def _check_amount(amount: int) -> None:
        if amount < 0:
            raise InvalidAsset("Amount must be non-negative.")

    # ─────────────────────────────────────────────
    # READS
    # ─────────────────────────────────────────────

    def balance_of(self, db: Session, *, token: str, account: str) -> int:
        row = self._balance_row(db, token, account)
        return row.amount if row else 0

    def allowance(self, db: Session, *, token: str, owner: str, spender: str) -> int:
        row = self._allowance_row(db, token, owner, spender)
        return row.amount if row else 0

    # ─────────────────────────────────────────────
    # MUTATIONS
    # ─────────────────────────────────────────────

    def mint(self, db: Session, *, token: str, to: str, amount: int) -> None:
        self._check_amount(amount)
        self._credit(db, token, to, amount)
        logger.info("funds minted token=%s to=%s amount=%s", token, to, amount)

    def approve(self, db: Session, *, token: str, owner: str, spender: str, amount: int) -> None:
        self._check_amount(amount)
        row = self._allowance_row(db, token, owner, spender, lock=True)
        if row is None:
            db.add(FundAllowance(token=token, owner=owner, spender=spender, amount=amount))
        else:
            row.amount = amount
        db.flush()

    def transfer(self, db: Session, *, token: str, sender: str, to: str, amount: int) -> None:
        self._check_amount(amount)
        if amount == 0:
            return
        self._debit(db, token, sender, amount)
        self._credit(db, token, to, amount)

    def transfer_from(
        self,
        db: Session,
        *,
        token: str,
        spender: str,
        owner: str,
        to: str,
        amount: int,
    ) -> None:
        """
        Move `owner`'s funds using the allowance `owner` gave `spender`.
        """
        self._check_amount(amount)
        if amount == 0:
            return
        allowance = self._allowance_row(db, token, owner, spender, lock=True)
        granted = allowance.amount if allowance else 0
        if granted < amount:
            raise InsufficientFunds(f"Allowance {granted} from {owner} to {spender} is below {amount}.")
        self._debit(db, token, owner, amount)
        allowance.amount = granted - amount
        self._credit(db, token, to, amount)
