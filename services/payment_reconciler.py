"""
Order Payment Reconciler

Applies payment provider webhook events to orders. Processing runs in two
strictly ordered phases: a pure verify-and-parse phase that either returns a
``CheckoutEvent`` or raises, and a transactional apply phase that marks the
order paid. Downstream notification happens after commit and never undoes it.
"""

import hashlib
import hmac
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, ContextManager, Dict, List, Mapping, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from database import db_session_scope
from models import MAX_ID
from repositories import OrderRepository, WebhookEventRepository
from services.errors import InvalidInputError, SignatureVerificationError, StorageError

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = 'checkout.session.completed'
DEFAULT_TOLERANCE_SECONDS = 300
SIGNATURE_SCHEME = 'v1'

ADDRESS_FIELDS = ('line1', 'line2', 'city', 'state', 'postal_code')

STATUS_PROCESSED = 'processed'
STATUS_IGNORED = 'ignored'
STATUS_DUPLICATE = 'duplicate'


@dataclass(frozen=True)
class CheckoutEvent:
    """Verified provider event, reduced to the fields the reconciler reads."""
    event_id: str
    event_type: str
    raw_order_id: Any = None
    address: str = ''
    phone: str = ''


@dataclass
class ReconcileResult:
    status: str
    event_id: str
    order_id: Optional[int] = None
    product_ids: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'status': self.status,
            'event_id': self.event_id,
            'order_id': self.order_id,
            'product_ids': list(self.product_ids),
        }


def _parse_signature_header(header: str):
    timestamp = None
    signatures = []
    for item in header.split(','):
        key, sep, value = item.strip().partition('=')
        if not sep:
            continue
        if key == 't':
            timestamp = value
        elif key == SIGNATURE_SCHEME:
            signatures.append(value)
    return timestamp, signatures


def verify_signature(payload: bytes, header: Optional[str], secret: str,
                     tolerance: int = DEFAULT_TOLERANCE_SECONDS,
                     now: Optional[float] = None) -> int:
    """Check a ``t=<ts>,v1=<hex>`` signature header against the raw body.

    Returns the signed timestamp. A ``tolerance`` of 0 disables the
    timestamp window check.
    """
    if not secret:
        raise SignatureVerificationError("Webhook secret is not configured")
    if not header:
        raise SignatureVerificationError("Missing signature header")

    timestamp, signatures = _parse_signature_header(header)
    if timestamp is None or not signatures:
        raise SignatureVerificationError("Malformed signature header")
    try:
        signed_at = int(timestamp)
    except ValueError:
        raise SignatureVerificationError("Malformed signature timestamp")

    if isinstance(payload, str):
        payload = payload.encode('utf-8')
    signed_payload = timestamp.encode('utf-8') + b'.' + payload
    expected = hmac.new(secret.encode('utf-8'), signed_payload, hashlib.sha256).hexdigest()

    if not any(hmac.compare_digest(expected, candidate) for candidate in signatures):
        raise SignatureVerificationError("No signature matches the payload")

    if tolerance > 0:
        current = time.time() if now is None else now
        if abs(current - signed_at) > tolerance:
            raise SignatureVerificationError(
                "Signature timestamp outside the tolerance window",
                {'timestamp': signed_at, 'tolerance': tolerance}
            )
    return signed_at


def format_address(address: Optional[Mapping[str, Any]]) -> str:
    """Join the non-empty address parts with ', '."""
    if not address:
        return ''
    parts = [address.get(key) for key in ADDRESS_FIELDS]
    return ', '.join(str(part).strip() for part in parts if part and str(part).strip())


def _as_mapping(value) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def parse_event(payload: bytes) -> CheckoutEvent:
    """Decode an already verified body into a ``CheckoutEvent``."""
    try:
        body = json.loads(payload)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"Malformed event body: {e}")
    if not isinstance(body, dict):
        raise InvalidInputError("Event body must be a JSON object")

    event_id = body.get('id')
    event_type = body.get('type')
    if not event_id or not isinstance(event_id, str):
        raise InvalidInputError("Event id is missing")
    if not event_type or not isinstance(event_type, str):
        raise InvalidInputError("Event type is missing", {'event_id': event_id})

    session_object = _as_mapping(_as_mapping(body.get('data')).get('object'))
    metadata = _as_mapping(session_object.get('metadata'))
    customer = _as_mapping(session_object.get('customer_details'))

    return CheckoutEvent(
        event_id=event_id,
        event_type=event_type,
        raw_order_id=metadata.get('orderId'),
        address=format_address(_as_mapping(customer.get('address'))),
        phone=customer.get('phone') or '',
    )


def parse_order_id(raw_order_id) -> int:
    """Order ids arrive as strings in provider metadata."""
    if raw_order_id is None or raw_order_id == '':
        raise InvalidInputError("Order id is missing from event metadata")
    if isinstance(raw_order_id, bool):
        raise InvalidInputError("Order id is not valid", {'order_id': raw_order_id})
    if isinstance(raw_order_id, int):
        order_id = raw_order_id
    elif isinstance(raw_order_id, str) and raw_order_id.strip().isdigit():
        order_id = int(raw_order_id.strip())
    else:
        raise InvalidInputError("Order id is not valid", {'order_id': str(raw_order_id)})
    if order_id <= 0 or order_id > MAX_ID:
        raise InvalidInputError("Order id is not valid", {'order_id': str(order_id)})
    return order_id


def _default_notifier(product_ids: List[int]) -> None:
    from tasks import notify_product_sales
    notify_product_sales(product_ids)


class OrderPaymentReconciler:
    """Marks orders paid from signed checkout-completed events."""

    def __init__(self, secret: str, tolerance: int = DEFAULT_TOLERANCE_SECONDS,
                 session_scope: Callable[[], ContextManager[Session]] = db_session_scope,
                 notifier: Optional[Callable[[List[int]], None]] = None):
        self.secret = secret
        self.tolerance = tolerance
        self.session_scope = session_scope
        self.notifier = notifier or _default_notifier

    def reconcile(self, raw_body: bytes, signature_header: Optional[str]) -> ReconcileResult:
        """Verify, parse and apply one webhook delivery."""
        verify_signature(raw_body, signature_header, self.secret, self.tolerance)
        event = parse_event(raw_body)
        logger.info(f"Verified webhook event {event.event_id} ({event.event_type})")

        result = self.apply(event)
        if result.status == STATUS_PROCESSED:
            self._notify(result)
        return result

    def apply(self, event: CheckoutEvent) -> ReconcileResult:
        """Transition the referenced order to paid, once per event id."""
        if event.event_type != CHECKOUT_COMPLETED:
            logger.info(f"Ignoring webhook event {event.event_id} of type {event.event_type}")
            return ReconcileResult(STATUS_IGNORED, event.event_id)

        order_id = parse_order_id(event.raw_order_id)

        try:
            with self.session_scope() as session:
                orders = OrderRepository(session)
                # Lock serializes concurrent deliveries for the same order
                order = orders.get_for_update(order_id)
                if order is None:
                    raise InvalidInputError(f"Order {order_id} not found", {'order_id': order_id})

                ledger = WebhookEventRepository(session)
                if ledger.is_processed(event.event_id):
                    logger.info(f"Webhook event {event.event_id} already applied to order {order_id}")
                    return ReconcileResult(STATUS_DUPLICATE, event.event_id, order_id)

                order.is_paid = True
                order.address = event.address
                order.phone = event.phone
                ledger.record(event.event_id, event.event_type, order_id)
                product_ids = orders.product_ids(order_id)
        except IntegrityError:
            # Another delivery of this event committed its ledger row first
            logger.info(f"Webhook event {event.event_id} recorded concurrently; treating as duplicate")
            return ReconcileResult(STATUS_DUPLICATE, event.event_id, order_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to mark order {order_id} paid: {e}")
            raise StorageError("Failed to update order", {'order_id': order_id}) from e

        logger.info(f"Order {order_id} marked paid by event {event.event_id}")
        return ReconcileResult(STATUS_PROCESSED, event.event_id, order_id, product_ids)

    def _notify(self, result: ReconcileResult) -> None:
        if not result.product_ids:
            return
        try:
            self.notifier(result.product_ids)
        except Exception as e:
            logger.warning(f"Product sales notification failed for order {result.order_id}: {e}")
