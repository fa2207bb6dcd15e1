import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from okto_portal.constants import CreditStatus
from okto_portal.db_types import utcnow
from okto_portal.exceptions import NotFound, PayoutCreditFailure
from okto_portal.models import PointCredit, Profile
from okto_portal.models.db_utils import conditional_update, get_session_scope
from okto_portal.services.lifecycle import as_uuid

logger = logging.getLogger(__name__)


class PayoutService:
    """
    Points ledger. A payout is written in two steps:

    1. `record_credit` inserts a PENDING credit in the same transaction as the
       status transition that earned it. The unique (source_type, source_id)
       key makes a second credit for the same work impossible.
    2. `apply_credit` flips the credit PENDING -> APPLIED and increments the
       balance in one transaction, so a credit is applied at most once no
       matter how often it is retried.
    """

    # ------------------------- Recording -------------------------
    def record_credit(
        self,
        session: Session,
        user_id: uuid.UUID,
        source_type: str,
        source_id: uuid.UUID,
        amount: int,
        description: str,
    ) -> PointCredit:
        credit = PointCredit(
            user_id=user_id,
            source_type=source_type,
            source_id=source_id,
            amount=amount,
            description=description,
            status=CreditStatus.PENDING,
        )
        session.add(credit)
        session.flush()
        logger.info(f"🧾 Recorded pending credit {credit.id}: {amount} points to {user_id} for {source_type} {source_id}")
        return credit

    # ------------------------- Applying -------------------------
    def _increment_balance(self, session: Session, user_id: uuid.UUID, amount: int) -> int:
        """Atomic in-database increment; never a read-modify-write in Python."""
        session.query(Profile).filter(Profile.id == user_id).update(
            {Profile.point_balance: Profile.point_balance + amount},
            synchronize_session=False,
        )
        return session.query(Profile.point_balance).filter(Profile.id == user_id).scalar()

    def apply_credit(self, credit_id: Any) -> Optional[Dict[str, Any]]:
        """
        Applies a pending credit to its user's balance.

        Returns:
            The applied credit as a dict, or None if it had already been applied.
        """
        credit_id = as_uuid(credit_id, "credit id")
        with get_session_scope() as session:
            credit = session.get(PointCredit, credit_id)
            if credit is None:
                raise NotFound("Credit not found.")

            claimed = conditional_update(
                session,
                PointCredit,
                [PointCredit.id == credit_id, PointCredit.status == CreditStatus.PENDING],
                {
                    PointCredit.status: CreditStatus.APPLIED,
                    PointCredit.applied_at: utcnow(),
                    PointCredit.last_error: None,
                },
            )
            if not claimed:
                logger.info(f"Credit {credit_id} already applied; nothing to do.")
                return None

            balance = self._increment_balance(session, credit.user_id, credit.amount)
            session.query(PointCredit).filter(PointCredit.id == credit_id).update(
                {PointCredit.balance_after: balance}, synchronize_session=False
            )
            session.refresh(credit)
            logger.info(f"✅ Applied credit {credit_id}: +{credit.amount} to {credit.user_id} (balance {balance})")
            return credit.to_dict()

    def settle(self, credit_id: uuid.UUID, entity: Dict[str, Any]) -> Dict[str, Any]:
        """
        Applies a freshly recorded credit. A failure here does not undo the
        transition that produced the credit; it is logged for reconciliation
        and reported as PayoutCreditFailure.
        """
        try:
            applied = self.apply_credit(credit_id)
        except Exception as e:
            logger.error(f"💥 Credit {credit_id} could not be applied and awaits reconciliation: {e}", exc_info=True)
            self._note_failure(credit_id, e)
            raise PayoutCreditFailure(
                "Transition recorded but the points credit is pending reconciliation.",
                credit_id=credit_id,
                entity=entity,
            ) from e
        return applied

    def _note_failure(self, credit_id: uuid.UUID, error: Exception) -> None:
        try:
            with get_session_scope() as session:
                session.query(PointCredit).filter(
                    PointCredit.id == credit_id, PointCredit.status == CreditStatus.PENDING
                ).update({PointCredit.last_error: str(error)[:500]}, synchronize_session=False)
        except SQLAlchemyError:
            logger.error(f"Could not record failure details on credit {credit_id}.", exc_info=True)

    # ------------------------- Reconciliation -------------------------
    def reconcile_pending_credits(self, limit: Optional[int] = None) -> Dict[str, int]:
        """Applies every PENDING credit, oldest first."""
        with get_session_scope() as session:
            query = (
                session.query(PointCredit.id)
                .filter(PointCredit.status == CreditStatus.PENDING)
                .order_by(PointCredit.created_at)
            )
            if limit:
                query = query.limit(limit)
            pending_ids = [row.id for row in query.all()]

        summary = {"pending": len(pending_ids), "applied": 0, "skipped": 0, "failed": 0}
        for credit_id in pending_ids:
            try:
                if self.apply_credit(credit_id):
                    summary["applied"] += 1
                else:
                    summary["skipped"] += 1
            except Exception as e:
                logger.exception(f"Reconciliation failed for credit {credit_id}.")
                self._note_failure(credit_id, e)
                summary["failed"] += 1

        logger.info(f"Reconciliation finished: {summary}")
        return summary

    # ------------------------- Queries -------------------------
    def get_user_credits(self, user_id: Any, limit: int = 20) -> List[Dict[str, Any]]:
        with get_session_scope() as session:
            credits = (
                session.query(PointCredit)
                .filter(PointCredit.user_id == as_uuid(user_id, "user id"))
                .order_by(PointCredit.created_at.desc())
                .limit(limit)
                .all()
            )
            return [credit.to_dict() for credit in credits]

    def get_credit_totals(self, session: Session, user_id: uuid.UUID) -> Dict[str, int]:
        rows = (
            session.query(PointCredit.status, func.count(PointCredit.id), func.sum(PointCredit.amount))
            .filter(PointCredit.user_id == user_id)
            .group_by(PointCredit.status)
            .all()
        )
        totals = {"applied_points": 0, "applied_count": 0, "pending_points": 0, "pending_count": 0}
        for status, count, amount in rows:
            prefix = "applied" if status == CreditStatus.APPLIED else "pending"
            totals[f"{prefix}_count"] = count or 0
            totals[f"{prefix}_points"] = int(amount or 0)
        return totals


payout_service = PayoutService()
