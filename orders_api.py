"""Order API endpoints for the store dashboard."""

import logging
from decimal import Decimal

from flask import Blueprint, jsonify
from flask_jwt_extended import jwt_required
from sqlalchemy.exc import SQLAlchemyError

from auth import require_store_owner
from database import db_session_scope
from repositories import OrderRepository
from schemas import OrderSchema, RevenueSchema
from services import StorageError

logger = logging.getLogger(__name__)

orders_bp = Blueprint('orders', __name__, url_prefix='/api/<int:store_id>')

orders_response_schema = OrderSchema(many=True)
revenue_response_schema = RevenueSchema()

def _order_summary(order):
    products = [item.product for item in order.order_items if item.product is not None]
    total = sum((Decimal(str(product.price)) for product in products), Decimal('0'))
    return {
        'id': order.id,
        'phone': order.phone,
        'address': order.address,
        'products': [product.name for product in products],
        'total_price': float(total),
        'is_paid': order.is_paid,
        'created_at': order.created_at,
    }

@orders_bp.route('/orders', methods=['GET'])
@jwt_required()
@require_store_owner
def list_orders(store_id):
    """Orders of a store, newest first."""
    try:
        with db_session_scope() as session:
            orders = OrderRepository(session).list_for_store(store_id)
            summaries = [_order_summary(order) for order in orders]
    except SQLAlchemyError as e:
        logger.error(f"Error listing orders for store {store_id}: {e}")
        raise StorageError("Failed to fetch orders") from e

    return jsonify(orders_response_schema.dump(summaries))

@orders_bp.route('/revenue', methods=['GET'])
@jwt_required()
@require_store_owner
def get_revenue(store_id):
    """Total revenue over the store's paid orders."""
    try:
        with db_session_scope() as session:
            repo = OrderRepository(session)
            revenue = {
                'store_id': store_id,
                'total_revenue': float(repo.total_revenue(store_id)),
                'paid_orders': repo.paid_count(store_id),
            }
    except SQLAlchemyError as e:
        logger.error(f"Error computing revenue for store {store_id}: {e}")
        raise StorageError("Failed to compute revenue") from e

    return jsonify(revenue_response_schema.dump(revenue))
