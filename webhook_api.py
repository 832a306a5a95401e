"""Payment provider webhook endpoint."""

import logging

from flask import Blueprint, current_app, jsonify, request

from services import OrderPaymentReconciler

logger = logging.getLogger(__name__)

webhook_bp = Blueprint('webhook', __name__, url_prefix='/api')

SIGNATURE_HEADER = 'Stripe-Signature'

def get_reconciler() -> OrderPaymentReconciler:
    """Reconciler configured from the app; tests may install their own."""
    reconciler = current_app.extensions.get('payment_reconciler')
    if reconciler is None:
        reconciler = OrderPaymentReconciler(
            secret=current_app.config.get('STRIPE_WEBHOOK_SECRET', ''),
            tolerance=current_app.config.get('WEBHOOK_TOLERANCE_SECONDS', 300),
        )
        current_app.extensions['payment_reconciler'] = reconciler
    return reconciler

@webhook_bp.route('/webhook', methods=['POST'])
def handle_payment_webhook():
    """Verify and apply a payment provider event.

    Errors propagate to the app's error handlers: signature and payload
    problems answer 400 so the provider stops retrying, storage failures
    answer 500 so it retries.
    """
    body = request.get_data()
    signature = request.headers.get(SIGNATURE_HEADER)

    result = get_reconciler().reconcile(body, signature)
    return jsonify(result.to_dict()), 200
