"""
PurchaseWorkflow: purchase-to-access state machine.

    initiate           -> PurchaseRecord(pending_payment)
    process_payment    -> charge + Transaction(pending) + one-time access token
    complete_from_webhook (provider callback, at-least-once)
                       -> Transaction/PurchaseRecord completed, slot decremented, notifications
    redeem_access      -> token consumed, access_provided = True, instructions revealed
    confirm_access     -> access_confirmed; dispute opened when access does not work

Each public method is one request-sized unit of work and commits once at the end.
Shared-state transitions are conditional UPDATEs, never read-then-write.
"""
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from groupshare.core.config import settings
from groupshare.core.errors import (
    AuthorizationError,
    ConflictError,
    ExhaustedError,
    InvalidStateError,
    NotFoundError,
    PaymentError,
    RateLimitedError,
    UnavailableError,
    ValidationError,
)
from groupshare.models.dispute import DISPUTE_OPEN, Dispute
from groupshare.models.purchase import (
    PURCHASE_COMPLETED,
    PURCHASE_FAILED,
    PURCHASE_PENDING_PAYMENT,
    PurchaseRecord,
)
from groupshare.models.transaction import TX_COMPLETED, TX_FAILED, TX_PENDING, Transaction
from groupshare.services.access_tokens.service import AccessTokenService, build_access_url
from groupshare.services.audit.service import AuditService
from groupshare.services.groups.service import GroupService
from groupshare.services.notifications.service import NotificationService
from groupshare.services.offers.service import OfferService
from groupshare.services.payments.base import PaymentProcessor, PaymentRequest
from groupshare.services.rate_limit import check_purchase_rate_limit
from groupshare.utils.metrics import (
    access_redemptions_total,
    disputes_opened_total,
    payments_total,
    purchase_rejected_total,
    purchases_initiated_total,
    webhooks_total,
)

logger = logging.getLogger(__name__)


def get_dispute_resolution_window() -> timedelta:
    return timedelta(days=settings.dispute_resolution_days)


@dataclass
class PaymentOutcome:
    purchase_id: str
    transaction_id: str
    payment_id: str
    access_url: str | None
    token_issued: bool


@dataclass
class WebhookOutcome:
    outcome: str  # completed, duplicate, failed, unknown_transaction, ignored
    transaction_id: str
    slot_decremented: bool = False


@dataclass
class AccessConfirmation:
    purchase: PurchaseRecord
    confirmed_at: datetime
    dispute: Dispute | None = None
    dispute_created: bool | None = None  # None when access works (no dispute attempted)


class PurchaseWorkflow:
    def __init__(
        self,
        db: Session,
        payment_processor: PaymentProcessor,
        rate_limiter=check_purchase_rate_limit,
    ):
        self.db = db
        self.payment_processor = payment_processor
        self.rate_limiter = rate_limiter
        self.offers = OfferService(db)
        self.groups = GroupService(db)
        self.tokens = AccessTokenService(db)
        self.notifications = NotificationService(db)
        self.audit = AuditService(db)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_purchase(self, purchase_id: str) -> PurchaseRecord | None:
        return self.db.query(PurchaseRecord).filter(PurchaseRecord.id == purchase_id).one_or_none()

    def get_owned_purchase(self, user_id: str, purchase_id: str) -> PurchaseRecord:
        purchase = self.get_purchase(purchase_id)
        if not purchase:
            raise NotFoundError("Purchase record not found", purchase_id=purchase_id)
        if purchase.user_id != user_id:
            raise AuthorizationError("You do not have access to this purchase")
        return purchase

    def list_purchases(self, user_id: str) -> list[PurchaseRecord]:
        return (
            self.db.query(PurchaseRecord)
            .filter(PurchaseRecord.user_id == user_id)
            .order_by(PurchaseRecord.created_at.desc())
            .all()
        )

    def get_transaction_for_purchase(self, purchase_id: str) -> Transaction | None:
        return (
            self.db.query(Transaction)
            .filter(Transaction.purchase_record_id == purchase_id)
            .one_or_none()
        )

    # ------------------------------------------------------------------
    # 1. Initiate
    # ------------------------------------------------------------------

    def initiate(self, buyer_id: str, offer_id: str) -> PurchaseRecord:
        try:
            offer = self.offers.reserve_slot(offer_id)
        except NotFoundError:
            purchase_rejected_total.labels(reason="not_found").inc()
            raise
        except UnavailableError:
            purchase_rejected_total.labels(reason="unavailable").inc()
            raise

        if offer.group.owner_id == buyer_id:
            raise ValidationError("You cannot buy a slot in your own group")
        if not self.rate_limiter(buyer_id):
            purchase_rejected_total.labels(reason="rate_limited").inc()
            raise RateLimitedError("Too many purchase attempts. Try again later.")

        purchase = PurchaseRecord(
            user_id=buyer_id,
            group_sub_id=offer.id,
            status=PURCHASE_PENDING_PAYMENT,
        )
        self.db.add(purchase)
        self.db.commit()
        self.db.refresh(purchase)

        purchases_initiated_total.inc()
        logger.info(
            "purchase_initiated",
            extra={"purchase_id": purchase.id, "offer_id": offer.id, "user_id": buyer_id},
        )
        return purchase

    # ------------------------------------------------------------------
    # 2. Process payment
    # ------------------------------------------------------------------

    def process_payment(self, caller_id: str, purchase_id: str, payment_method: str) -> PaymentOutcome:
        if not payment_method:
            raise ValidationError("Missing required field: paymentMethod")

        purchase = self.get_owned_purchase(caller_id, purchase_id)
        if purchase.status != PURCHASE_PENDING_PAYMENT:
            raise InvalidStateError(
                f"Purchase is {purchase.status}, payment is only possible while pending_payment",
                purchase_id=purchase_id,
            )
        offer = purchase.offer

        # One transaction per purchase (unique purchase_record_id): inserting it
        # before the charge is the claim, so a second request cannot charge again.
        if self.get_transaction_for_purchase(purchase.id) is not None:
            raise ConflictError("Payment for this purchase has already been submitted", purchase_id=purchase_id)
        transaction = Transaction(
            purchase_record_id=purchase.id,
            group_sub_id=offer.id,
            buyer_id=caller_id,
            seller_id=offer.group.owner_id,
            amount=offer.price_per_slot,
            currency=offer.currency,
            payment_method=payment_method,
            status=TX_PENDING,
        )
        self.db.add(transaction)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("Payment for this purchase has already been submitted", purchase_id=purchase_id)
        transaction_id = transaction.id

        payment_id = "pmt_" + secrets.token_hex(8)
        try:
            result = self.payment_processor.charge(
                PaymentRequest(
                    payment_id=payment_id,
                    user_id=caller_id,
                    offer_id=offer.id,
                    amount=offer.price_per_slot,
                    currency=offer.currency,
                    payment_method=payment_method,
                )
            )
        except PaymentError:
            # Nothing was charged: release the claim so the buyer can retry.
            self.db.query(Transaction).filter(
                Transaction.id == transaction_id,
                Transaction.payment_id.is_(None),
            ).delete(synchronize_session=False)
            self.db.commit()
            payments_total.labels(status="failed").inc()
            logger.warning("payment_failed", extra={"purchase_id": purchase_id, "payment_id": payment_id})
            raise

        self.db.execute(
            update(Transaction)
            .where(Transaction.id == transaction_id)
            .values(
                payment_provider=result.provider,
                payment_id=result.payment_id,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        payments_total.labels(status="accepted").inc()
        logger.info(
            "payment_accepted",
            extra={"purchase_id": purchase.id, "transaction_id": transaction_id, "payment_id": result.payment_id},
        )

        # The charge stands from here on; a token failure is reported, not raised.
        access_url = None
        try:
            raw_token = self.tokens.issue(purchase.id)
            self.db.commit()
            access_url = build_access_url(purchase.id, raw_token)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("access_token_issue_failed", extra={"purchase_id": purchase.id, "error": str(e)})

        return PaymentOutcome(
            purchase_id=purchase.id,
            transaction_id=transaction_id,
            payment_id=result.payment_id,
            access_url=access_url,
            token_issued=access_url is not None,
        )

    # ------------------------------------------------------------------
    # 3. Webhook completion
    # ------------------------------------------------------------------

    def complete_from_webhook(self, transaction_id: str, status: str, payment_id: str | None) -> WebhookOutcome:
        """
        Safe under at-least-once delivery: the transaction moves to completed through
        a conditional UPDATE, and only the delivery that wins it decrements the slot
        and notifies. SQLAlchemyError propagates (hard persistence failure).
        """
        transaction = self.db.query(Transaction).filter(Transaction.id == transaction_id).one_or_none()
        if transaction is None:
            webhooks_total.labels(outcome="unknown_transaction").inc()
            logger.warning("webhook_unknown_transaction", extra={"transaction_id": transaction_id})
            return WebhookOutcome(outcome="unknown_transaction", transaction_id=transaction_id)

        if status == TX_COMPLETED:
            return self._complete(transaction, payment_id)
        if status == TX_FAILED:
            return self._fail(transaction, payment_id)

        webhooks_total.labels(outcome="ignored").inc()
        logger.info("webhook_status_ignored", extra={"transaction_id": transaction_id, "status": status})
        return WebhookOutcome(outcome="ignored", transaction_id=transaction_id)

    def _complete(self, transaction: Transaction, payment_id: str | None) -> WebhookOutcome:
        now = datetime.now(timezone.utc)
        values = {"status": TX_COMPLETED, "updated_at": now, "completed_at": now}
        if payment_id:
            values["payment_id"] = payment_id
        won = self.db.execute(
            update(Transaction)
            .where(Transaction.id == transaction.id, Transaction.status != TX_COMPLETED)
            .values(**values)
            .execution_options(synchronize_session=False)
        ).rowcount
        if not won:
            self.db.rollback()
            webhooks_total.labels(outcome="duplicate").inc()
            logger.info("webhook_duplicate", extra={"transaction_id": transaction.id})
            return WebhookOutcome(outcome="duplicate", transaction_id=transaction.id)

        self.db.execute(
            update(PurchaseRecord)
            .where(
                PurchaseRecord.id == transaction.purchase_record_id,
                PurchaseRecord.status != PURCHASE_COMPLETED,
            )
            .values(status=PURCHASE_COMPLETED, updated_at=now)
            .execution_options(synchronize_session=False)
        )

        slot_decremented = True
        try:
            self.offers.decrement_slot(transaction.group_sub_id)
        except ExhaustedError:
            # Oversold: more pending purchases were paid than slots were left.
            slot_decremented = False
            logger.error(
                "webhook_slot_exhausted",
                extra={"transaction_id": transaction.id, "offer_id": transaction.group_sub_id},
            )
            self.audit.log(
                actor_type="payment_provider",
                actor_id=None,
                action="slot_oversold",
                entity_type="transaction",
                entity_id=transaction.id,
                payload={"offer_id": transaction.group_sub_id, "purchase_id": transaction.purchase_record_id},
            )

        offer = self.offers.get(transaction.group_sub_id)
        if offer is not None:
            self.groups.add_member(offer.group_id, transaction.buyer_id)

        self.audit.log(
            actor_type="payment_provider",
            actor_id=None,
            action="purchase_completed",
            entity_type="purchase",
            entity_id=transaction.purchase_record_id,
            payload={"transaction_id": transaction.id, "payment_id": payment_id},
        )

        self.notifications.notify(
            transaction.buyer_id,
            "purchase_completed",
            "Purchase completed",
            "Your purchase has been completed. Open it to see the access details.",
            "purchase",
            transaction.purchase_record_id,
        )
        self.notifications.notify(
            transaction.seller_id,
            "sale_completed",
            "Sale completed",
            "Someone has just bought a slot in your subscription.",
            "purchase",
            transaction.purchase_record_id,
        )
        self.db.commit()

        webhooks_total.labels(outcome="completed").inc()
        logger.info(
            "purchase_completed",
            extra={"transaction_id": transaction.id, "purchase_id": transaction.purchase_record_id},
        )
        return WebhookOutcome(outcome="completed", transaction_id=transaction.id, slot_decremented=slot_decremented)

    def _fail(self, transaction: Transaction, payment_id: str | None) -> WebhookOutcome:
        now = datetime.now(timezone.utc)
        values = {"status": TX_FAILED, "updated_at": now}
        if payment_id:
            values["payment_id"] = payment_id
        # Completed transactions are never regressed by a late failure callback.
        self.db.execute(
            update(Transaction)
            .where(Transaction.id == transaction.id, Transaction.status == TX_PENDING)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        self.db.execute(
            update(PurchaseRecord)
            .where(
                PurchaseRecord.id == transaction.purchase_record_id,
                PurchaseRecord.status == PURCHASE_PENDING_PAYMENT,
            )
            .values(status=PURCHASE_FAILED, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        webhooks_total.labels(outcome="failed").inc()
        logger.info("payment_failed_by_provider", extra={"transaction_id": transaction.id})
        return WebhookOutcome(outcome="failed", transaction_id=transaction.id)

    # ------------------------------------------------------------------
    # 4. Redeem access link
    # ------------------------------------------------------------------

    def redeem_access(self, caller_id: str, purchase_id: str, raw_token: str) -> str:
        """Consume the one-time token and return the offer's access instructions."""
        purchase = self.get_owned_purchase(caller_id, purchase_id)
        now = datetime.now(timezone.utc)
        if not self.tokens.consume(purchase.id, raw_token, now=now):
            self.db.rollback()
            access_redemptions_total.labels(result="rejected").inc()
            logger.warning("access_token_rejected", extra={"purchase_id": purchase_id, "user_id": caller_id})
            raise InvalidStateError("Invalid or expired access token", purchase_id=purchase_id)

        self.db.execute(
            update(PurchaseRecord)
            .where(PurchaseRecord.id == purchase.id)
            .values(access_provided=True, access_provided_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        instructions = self.offers.get_access_instructions(purchase.group_sub_id)
        self.db.commit()

        access_redemptions_total.labels(result="ok").inc()
        logger.info("access_provided", extra={"purchase_id": purchase.id, "user_id": caller_id})
        return instructions.instructions if instructions else ""

    # ------------------------------------------------------------------
    # 5. Confirm access / dispute
    # ------------------------------------------------------------------

    def confirm_access(self, caller_id: str, purchase_id: str, is_working) -> AccessConfirmation:
        if not isinstance(is_working, bool):
            raise ValidationError("isWorking field must be a boolean value")

        purchase = self.get_owned_purchase(caller_id, purchase_id)
        now = datetime.now(timezone.utc)
        confirmed = self.db.execute(
            update(PurchaseRecord)
            .where(
                PurchaseRecord.id == purchase.id,
                PurchaseRecord.access_provided.is_(True),
                PurchaseRecord.access_confirmed.is_(False),
            )
            .values(access_confirmed=True, access_confirmed_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        ).rowcount
        if not confirmed:
            self.db.rollback()
            if purchase.access_confirmed:
                raise InvalidStateError("Access has already been confirmed", purchase_id=purchase_id)
            raise InvalidStateError("Access has not been provided yet", purchase_id=purchase_id)
        self.db.commit()
        self.db.refresh(purchase)
        logger.info("access_confirmed", extra={"purchase_id": purchase.id, "status": "working" if is_working else "not_working"})

        if is_working:
            return AccessConfirmation(purchase=purchase, confirmed_at=now)

        try:
            dispute = self._open_dispute(purchase, now)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("dispute_create_failed", extra={"purchase_id": purchase.id, "error": str(e)})
            return AccessConfirmation(purchase=purchase, confirmed_at=now, dispute_created=False)

        self.notifications.notify(
            purchase.user_id,
            "dispute_created",
            "Access problem reported",
            "Your report has been registered. We will contact you shortly.",
            "dispute",
            dispute.id,
        )
        self.notifications.notify(
            purchase.offer.group.owner_id,
            "dispute_filed",
            "Access problem reported",
            "A buyer reported a problem with access to your subscription. Please verify it urgently.",
            "dispute",
            dispute.id,
        )
        self.db.commit()

        disputes_opened_total.inc()
        logger.info("dispute_opened", extra={"purchase_id": purchase.id, "dispute_id": dispute.id})
        return AccessConfirmation(purchase=purchase, confirmed_at=now, dispute=dispute, dispute_created=True)

    def _open_dispute(self, purchase: PurchaseRecord, confirmed_at: datetime) -> Dispute:
        transaction = self.get_transaction_for_purchase(purchase.id)
        if transaction is None:
            logger.warning("dispute_without_transaction", extra={"purchase_id": purchase.id})
        dispute = Dispute(
            reporter_id=purchase.user_id,
            reported_entity_type="subscription",
            reported_entity_id=purchase.group_sub_id,
            transaction_id=transaction.id if transaction else None,
            dispute_type="access",
            description="Automatic report: problem with access to the subscription",
            status=DISPUTE_OPEN,
            evidence_required=True,
            resolution_deadline=confirmed_at + get_dispute_resolution_window(),
        )
        self.db.add(dispute)
        self.db.flush()
        self.audit.log(
            actor_type="user",
            actor_id=purchase.user_id,
            action="dispute_opened",
            entity_type="dispute",
            entity_id=dispute.id,
            payload={"purchase_id": purchase.id},
        )
        return dispute
