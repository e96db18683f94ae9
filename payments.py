"""
Simulated crypto payment gateway.

- Sessions are created against a supported coin and a merchant wallet
  address, and expire after a configurable number of minutes.
- Processing waits a fixed latency, then rolls a seeded RNG: a draw above
  ``failure_threshold`` succeeds.
- Statuses live on a ``PaymentStatusBoard``; the manager is its only writer
  and callers subscribe to live status updates per payment id.
- Cancelling a payment that is being processed interrupts the latency wait,
  so the result is CANCELLED and no later COMPLETED overwrites it.

NOTE: This is *mock* code. No real gateways are called.
"""

from __future__ import annotations

import asyncio
import json
import logging
import random
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, Dict, List, Optional

from config import Settings
from errors import InvalidTransitionError, NotFoundError, ValidationError
from schemas import (
    ExternalWalletApp,
    PaymentRequestWithWalletSelection,
    PaymentResult,
    PaymentSession,
    PaymentStatus,
)
from storage import KeyValueStore
from wallets import WalletAddressBook, WalletDirectory, payment_deep_link, quote_crypto_amount

logger = logging.getLogger(__name__)

FAILURE_MESSAGE = "Payment failed. Please try again."
CANCELLED_MESSAGE = "Payment was cancelled."
EXPIRED_MESSAGE = "Payment session expired"

TERMINAL_STATUSES = frozenset({
    PaymentStatus.COMPLETED,
    PaymentStatus.FAILED,
    PaymentStatus.CANCELLED,
    PaymentStatus.REFUNDED,
    PaymentStatus.EXPIRED,
})
CANCELLABLE_STATUSES = frozenset({PaymentStatus.PENDING, PaymentStatus.PROCESSING})
REFUNDABLE_STATUSES = frozenset({PaymentStatus.COMPLETED})

_CLOSED = object()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StatusSubscription:
    """Async iterator over one payment's statuses.

    Yields the status current at subscription time, then every later write,
    until ``close()``. Use as a context manager to unsubscribe reliably.
    """

    def __init__(self, board: "PaymentStatusBoard", payment_id: str) -> None:
        self.board = board
        self.payment_id = payment_id
        self._queue: asyncio.Queue = asyncio.Queue()
        self.closed = False

    def _push(self, status: PaymentStatus) -> None:
        if not self.closed:
            self._queue.put_nowait(status)

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self.board._unsubscribe(self)
            self._queue.put_nowait(_CLOSED)

    def __enter__(self) -> "StatusSubscription":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def __aiter__(self) -> "StatusSubscription":
        return self

    async def __anext__(self) -> PaymentStatus:
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item


class PaymentStatusBoard:
    """Latest status per payment id, with live subscribers."""

    def __init__(self) -> None:
        self._statuses: Dict[str, PaymentStatus] = {}
        self._subscribers: Dict[str, List[StatusSubscription]] = {}

    def get(self, payment_id: str) -> Optional[PaymentStatus]:
        return self._statuses.get(payment_id)

    def set(self, payment_id: str, status: PaymentStatus) -> None:
        self._statuses[payment_id] = status
        for sub in list(self._subscribers.get(payment_id, ())):
            sub._push(status)

    def subscribe(self, payment_id: str) -> StatusSubscription:
        sub = StatusSubscription(self, payment_id)
        self._subscribers.setdefault(payment_id, []).append(sub)
        current = self._statuses.get(payment_id)
        if current is not None:
            sub._push(current)
        return sub

    def _unsubscribe(self, sub: StatusSubscription) -> None:
        subs = self._subscribers.get(sub.payment_id, [])
        if sub in subs:
            subs.remove(sub)
        if not subs:
            self._subscribers.pop(sub.payment_id, None)


class PaymentManager:
    """Creates payment sessions, simulates processing and tracks statuses."""

    def __init__(
        self,
        directory: WalletDirectory,
        address_book: WalletAddressBook,
        storage: KeyValueStore,
        settings: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        settings = settings or Settings()
        self.directory = directory
        self.address_book = address_book
        self.records = storage
        self.merchant_id = settings.merchant_id
        self.payment_base_url = settings.payment_base_url
        self.session_lifetime = timedelta(minutes=settings.payment_session_minutes)
        self.processing_delay = settings.processing_delay
        self.failure_threshold = settings.failure_threshold
        self.rng = rng or random.Random(settings.random_seed)
        self.clock = clock

        self.statuses = PaymentStatusBoard()
        self._sessions: Dict[str, PaymentSession] = {}
        self._refunds: Dict[str, Decimal] = {}
        self._inflight: Dict[str, asyncio.Event] = {}

    # ----- status helpers -----
    def _update_status(self, payment_id: str, status: PaymentStatus) -> None:
        previous = self.statuses.get(payment_id)
        self.statuses.set(payment_id, status)
        logger.info("payment %s: %s -> %s", payment_id,
                    previous.value if previous else "-", status.value)

    def _require_status(self, payment_id: str) -> PaymentStatus:
        status = self.statuses.get(payment_id)
        if status is None:
            raise NotFoundError(f"Payment not found: {payment_id}")
        return status

    def _store_payment_locally(self, session: PaymentSession) -> None:
        record = {"session": session.model_dump(mode="json"), "crypto": session.currency}
        self.records.set(f"payment_{session.payment_id}", json.dumps(record))
        self._update_status(session.payment_id, PaymentStatus.PENDING)

    def _result(self, session: PaymentSession, status: PaymentStatus,
                transaction_id: Optional[str] = None,
                error_message: Optional[str] = None) -> PaymentResult:
        return PaymentResult(
            payment_id=session.payment_id,
            status=status,
            transaction_id=transaction_id,
            amount=session.amount,
            currency=session.currency,
            processed_at=self.clock(),
            error_message=error_message,
        )

    # ----- queries -----
    def supported_currencies(self) -> List[str]:
        return sorted(self.directory.supported_currencies())

    def current_status(self, payment_id: str) -> PaymentStatus:
        return self._require_status(payment_id)

    def get_payment_status(self, payment_id: str) -> StatusSubscription:
        """Live status updates for ``payment_id``.

        Unknown ids raise NotFoundError rather than reporting FAILED.
        """
        self._require_status(payment_id)
        return self.statuses.subscribe(payment_id)

    def get_session(self, payment_id: str) -> PaymentSession:
        session = self._sessions.get(payment_id)
        if session is None:
            raise NotFoundError(f"Payment not found: {payment_id}")
        return session

    def refunded_amount(self, payment_id: str) -> Optional[Decimal]:
        return self._refunds.get(payment_id)

    # ----- main APIs -----
    async def initialize_payment(self, amount, currency: str, order_id: str,
                                 customer_email: str, description: str) -> PaymentSession:
        amount = amount if isinstance(amount, Decimal) else Decimal(str(amount))
        if amount <= 0:
            raise ValidationError("amount must be > 0")
        code = self.directory.require_supported(currency)

        payment_id = str(uuid.uuid4())
        session = PaymentSession(
            payment_id=payment_id,
            order_id=order_id,
            amount=amount,
            currency=code,
            amount_crypto=quote_crypto_amount(amount, code),
            wallet_address=self.address_book.resolve(code),
            merchant_id=self.merchant_id,
            customer_email=customer_email,
            description=description,
            payment_url=f"{self.payment_base_url}/payment/{payment_id}",
            expires_at=self.clock() + self.session_lifetime,
            status=PaymentStatus.PENDING,
        )
        self._sessions[payment_id] = session
        self._store_payment_locally(session)
        logger.info("payment %s initialized for order %s: %s (%s %s)",
                    payment_id, order_id, amount, session.amount_crypto, code)
        return session

    async def _simulate_latency(self, cancelled: asyncio.Event) -> None:
        if self.processing_delay <= 0:
            await asyncio.sleep(0)
            return
        try:
            await asyncio.wait_for(cancelled.wait(), timeout=self.processing_delay)
        except asyncio.TimeoutError:
            pass

    async def process_payment(self, session: PaymentSession) -> PaymentResult:
        payment_id = session.payment_id
        current = self._require_status(payment_id)
        if current is not PaymentStatus.PENDING:
            raise InvalidTransitionError(payment_id, current.value, PaymentStatus.PROCESSING.value)

        if self.clock() >= session.expires_at:
            self._update_status(payment_id, PaymentStatus.EXPIRED)
            return self._result(session, PaymentStatus.EXPIRED, error_message=EXPIRED_MESSAGE)

        cancelled = asyncio.Event()
        self._inflight[payment_id] = cancelled
        try:
            self._update_status(payment_id, PaymentStatus.PROCESSING)
            await self._simulate_latency(cancelled)
            if cancelled.is_set():
                return self._result(session, PaymentStatus.CANCELLED, error_message=CANCELLED_MESSAGE)

            if self.rng.random() > self.failure_threshold:
                self._update_status(payment_id, PaymentStatus.COMPLETED)
                return self._result(session, PaymentStatus.COMPLETED, transaction_id=str(uuid.uuid4()))
            self._update_status(payment_id, PaymentStatus.FAILED)
            return self._result(session, PaymentStatus.FAILED, error_message=FAILURE_MESSAGE)
        except asyncio.CancelledError:
            self._update_status(payment_id, PaymentStatus.CANCELLED)
            raise
        except Exception:
            logger.exception("payment %s processing fault", payment_id)
            self._update_status(payment_id, PaymentStatus.FAILED)
            raise
        finally:
            self._inflight.pop(payment_id, None)

    async def cancel_payment(self, payment_id: str) -> None:
        current = self._require_status(payment_id)
        if current not in CANCELLABLE_STATUSES:
            raise InvalidTransitionError(payment_id, current.value, PaymentStatus.CANCELLED.value)
        self._update_status(payment_id, PaymentStatus.CANCELLED)
        cancelled = self._inflight.get(payment_id)
        if cancelled is not None:
            cancelled.set()

    async def refund_payment(self, payment_id: str, amount=None) -> Decimal:
        """Refund a completed payment, fully or partially. Returns the refunded amount."""
        current = self._require_status(payment_id)
        if current not in REFUNDABLE_STATUSES:
            raise InvalidTransitionError(payment_id, current.value, PaymentStatus.REFUNDED.value)
        session = self.get_session(payment_id)
        if amount is None:
            refund = session.amount
        else:
            refund = amount if isinstance(amount, Decimal) else Decimal(str(amount))
            if refund <= 0 or refund > session.amount:
                raise ValidationError(f"Refund amount must be between 0 and {session.amount}")
        self._refunds[payment_id] = refund
        self._update_status(payment_id, PaymentStatus.REFUNDED)
        return refund

    # ----- wallet apps -----
    def available_wallet_apps(self) -> List[ExternalWalletApp]:
        return self.directory.all_wallet_apps()

    def wallets_for_currency(self, currency: str) -> List[ExternalWalletApp]:
        return self.directory.wallets_for_currency(currency)

    def configured_wallets(self) -> Dict[str, str]:
        return self.address_book.configured_wallets(self.supported_currencies())

    async def create_payment_with_wallet_selection(self, amount, currency: str, order_id: str,
                                                   customer_email: str,
                                                   description: str) -> PaymentRequestWithWalletSelection:
        session = await self.initialize_payment(amount, currency, order_id, customer_email, description)
        return PaymentRequestWithWalletSelection(
            payment_session=session,
            available_wallets=self.directory.wallets_for_currency(session.currency),
        )

    async def generate_payment_deep_link(self, wallet_app: ExternalWalletApp,
                                         session: PaymentSession) -> str:
        code = self.directory.require_supported(session.currency)
        wallet = self.directory.wallet_by_package(wallet_app.package_name)
        address = self.address_book.resolve(code)
        return payment_deep_link(wallet, address, session.amount_crypto, code)
