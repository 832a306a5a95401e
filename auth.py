"""Store ownership checks for JWT-protected routes."""
import logging
from functools import wraps

from flask import g, jsonify
from flask_jwt_extended import get_jwt_identity
from sqlalchemy.exc import SQLAlchemyError

from database import db_session_scope
from repositories import StoreRepository

logger = logging.getLogger(__name__)

def require_store_owner(f):
    """
    Decorator to require that the JWT identity owns ``store_id``

    Usage:
        @bp.route('/<int:store_id>/orders')
        @jwt_required()
        @require_store_owner
        def list_orders(store_id):
            ...
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        store_id = kwargs.get('store_id')
        owner_id = get_jwt_identity()
        if not owner_id:
            return jsonify({"error": "Authentication required", "category": "authentication", "details": {}}), 401

        try:
            with db_session_scope() as session:
                store = StoreRepository(session).get_owned_by(store_id, owner_id)
                owned = store is not None
        except SQLAlchemyError as e:
            logger.error(f"Ownership lookup failed for store {store_id}: {e}")
            return jsonify({"error": "Storage failure", "category": "storage", "details": {}}), 500

        if not owned:
            logger.warning(f"User {owner_id} denied access to store {store_id}")
            return jsonify({"error": "Unauthorized", "category": "authentication", "details": {}}), 403

        g.store_owner_id = owner_id
        return f(*args, **kwargs)

    return decorated_function
