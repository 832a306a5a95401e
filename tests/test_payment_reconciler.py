"""Tests for payment webhook reconciliation."""
import json
import time
from unittest.mock import Mock, patch

import pytest
from sqlalchemy.exc import OperationalError

import database
from conftest import WEBHOOK_SECRET, checkout_event, sign_payload
from models import Order, ProcessedWebhookEvent
from services import InvalidInputError, OrderPaymentReconciler, SignatureVerificationError, StorageError
from services.payment_reconciler import format_address, parse_event, parse_order_id, verify_signature


def _order(order_id):
    with database.db_session_scope() as session:
        order = session.get(Order, order_id)
        return {'is_paid': order.is_paid, 'address': order.address, 'phone': order.phone}


@pytest.fixture
def notifier():
    return Mock()


@pytest.fixture
def reconciler(db, notifier):
    return OrderPaymentReconciler(WEBHOOK_SECRET, notifier=notifier)


class TestVerifySignature:
    """Signature header checks run before any parsing."""

    def test_valid_signature_returns_timestamp(self):
        payload = b'{"id": "evt_1"}'
        header = sign_payload(payload, timestamp=1700000000)

        assert verify_signature(payload, header, WEBHOOK_SECRET, now=1700000100) == 1700000000

    def test_any_matching_v1_signature_is_accepted(self):
        payload = b'{}'
        good = sign_payload(payload, timestamp=1700000000)
        header = "t=1700000000,v1=deadbeef," + good.split(',')[1]

        verify_signature(payload, header, WEBHOOK_SECRET, now=1700000000)

    def test_wrong_secret(self):
        payload = b'{}'
        header = sign_payload(payload, secret="whsec_other")

        with pytest.raises(SignatureVerificationError):
            verify_signature(payload, header, WEBHOOK_SECRET)

    def test_tampered_body(self):
        header = sign_payload(b'{"amount": 1}')

        with pytest.raises(SignatureVerificationError):
            verify_signature(b'{"amount": 1000}', header, WEBHOOK_SECRET)

    @pytest.mark.parametrize("header", [None, "", "garbage", "t=abc,v1=00", "v1=00", "t=1700000000"])
    def test_malformed_header(self, header):
        with pytest.raises(SignatureVerificationError):
            verify_signature(b'{}', header, WEBHOOK_SECRET)

    def test_stale_timestamp(self):
        payload = b'{}'
        header = sign_payload(payload, timestamp=1700000000)

        with pytest.raises(SignatureVerificationError):
            verify_signature(payload, header, WEBHOOK_SECRET, tolerance=300, now=1700000301)

    def test_zero_tolerance_disables_window(self):
        payload = b'{}'
        header = sign_payload(payload, timestamp=1000)

        verify_signature(payload, header, WEBHOOK_SECRET, tolerance=0, now=time.time())

    def test_missing_secret(self):
        payload = b'{}'

        with pytest.raises(SignatureVerificationError):
            verify_signature(payload, sign_payload(payload), "")


class TestParseEvent:
    """Decoding of verified bodies."""

    def test_extracts_order_address_and_phone(self):
        event = parse_event(checkout_event(42, event_id="evt_9"))

        assert event.event_id == "evt_9"
        assert event.event_type == "checkout.session.completed"
        assert event.raw_order_id == "42"
        assert event.address == "221B Baker St, London, NW1"
        assert event.phone == "+44 20 7946 0000"

    def test_missing_phone_and_address_default_to_empty(self):
        body = json.dumps({
            'id': "evt_2",
            'type': "checkout.session.completed",
            'data': {'object': {'metadata': {'orderId': "1"}, 'customer_details': {'phone': None}}},
        }).encode()

        event = parse_event(body)

        assert event.phone == ""
        assert event.address == ""

    def test_malformed_json(self):
        with pytest.raises(InvalidInputError):
            parse_event(b'{not json')

    def test_missing_event_id(self):
        with pytest.raises(InvalidInputError):
            parse_event(b'{"type": "checkout.session.completed"}')

    def test_format_address_skips_empty_parts(self):
        assert format_address({'line1': "1 Main St", 'line2': None, 'city': "Springfield",
                               'state': "IL", 'postal_code': "62701"}) == "1 Main St, Springfield, IL, 62701"
        assert format_address(None) == ""

    @pytest.mark.parametrize("raw", [None, "", "abc", "4.5", "-3", True, 0, "99999999999999999999", 2**31])
    def test_invalid_order_ids(self, raw):
        with pytest.raises(InvalidInputError):
            parse_order_id(raw)

    def test_order_id_from_string(self):
        assert parse_order_id(" 17 ") == 17
        assert parse_order_id(17) == 17
        assert parse_order_id(str(2**31 - 1)) == 2**31 - 1


class TestReconcile:
    """End-to-end reconciliation against the database."""

    def test_marks_order_paid_with_shipping_details(self, reconciler, notifier, seed, make_product, make_order):
        product_id = make_product()
        order_id = make_order(product_ids=[product_id])
        body = checkout_event(order_id)

        result = reconciler.reconcile(body, sign_payload(body))

        assert result.status == "processed"
        assert result.order_id == order_id
        assert result.product_ids == [product_id]
        assert _order(order_id) == {
            'is_paid': True,
            'address': "221B Baker St, London, NW1",
            'phone': "+44 20 7946 0000",
        }
        notifier.assert_called_once_with([product_id])

    def test_invalid_signature_leaves_order_unchanged(self, reconciler, notifier, seed, make_order):
        order_id = make_order()
        body = checkout_event(order_id)

        with pytest.raises(SignatureVerificationError):
            reconciler.reconcile(body, sign_payload(body, secret="whsec_wrong"))

        assert _order(order_id) == {'is_paid': False, 'address': "", 'phone': ""}
        notifier.assert_not_called()

    def test_other_event_types_are_ignored(self, reconciler, notifier, seed, make_order):
        order_id = make_order()
        body = checkout_event(order_id, event_type="payment_intent.created")

        result = reconciler.reconcile(body, sign_payload(body))

        assert result.status == "ignored"
        assert _order(order_id)['is_paid'] is False
        notifier.assert_not_called()

    def test_unknown_order(self, reconciler, seed):
        body = checkout_event(999999)

        with pytest.raises(InvalidInputError):
            reconciler.reconcile(body, sign_payload(body))

    def test_missing_order_id(self, reconciler, seed):
        body = checkout_event(None)

        with pytest.raises(InvalidInputError):
            reconciler.reconcile(body, sign_payload(body))

    def test_redelivery_is_a_duplicate_with_same_final_state(self, reconciler, notifier, seed, make_product, make_order):
        product_id = make_product()
        order_id = make_order(product_ids=[product_id])
        body = checkout_event(order_id, event_id="evt_replayed")

        first = reconciler.reconcile(body, sign_payload(body))
        state_after_first = _order(order_id)
        second = reconciler.reconcile(body, sign_payload(body))

        assert first.status == "processed"
        assert second.status == "duplicate"
        assert _order(order_id) == state_after_first
        notifier.assert_called_once()
        with database.db_session_scope() as session:
            assert session.query(ProcessedWebhookEvent).count() == 1

    def test_notifier_failure_keeps_order_paid(self, db, seed, make_product, make_order):
        failing = Mock(side_effect=ConnectionError("broker down"))
        reconciler = OrderPaymentReconciler(WEBHOOK_SECRET, notifier=failing)
        order_id = make_order(product_ids=[make_product()])
        body = checkout_event(order_id)

        result = reconciler.reconcile(body, sign_payload(body))

        assert result.status == "processed"
        assert _order(order_id)['is_paid'] is True
        failing.assert_called_once()

    def test_storage_failure_rolls_back(self, reconciler, notifier, seed, make_order):
        order_id = make_order()
        body = checkout_event(order_id)

        with patch('repositories.order_repository.WebhookEventRepository.record',
                   side_effect=OperationalError("INSERT", {}, Exception("database is locked"))):
            with pytest.raises(StorageError):
                reconciler.reconcile(body, sign_payload(body))

        assert _order(order_id) == {'is_paid': False, 'address': "", 'phone': ""}
        notifier.assert_not_called()

    def test_default_notifier_queues_task(self, db, seed, make_product, make_order, mock_notifier):
        reconciler = OrderPaymentReconciler(WEBHOOK_SECRET)
        product_id = make_product()
        order_id = make_order(product_ids=[product_id])
        body = checkout_event(order_id)

        reconciler.reconcile(body, sign_payload(body))

        mock_notifier.assert_called_once_with([product_id])
