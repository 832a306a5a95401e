"""Product API endpoints for catalog management."""

import logging

from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required

from auth import require_store_owner
from schemas import ProductCreateSchema, ProductUpdateSchema, ProductViewSchema
from services import AssociationReplacer, CatalogQueryService, ProductChanges, ProductDraft

logger = logging.getLogger(__name__)

products_bp = Blueprint('products', __name__, url_prefix='/api/<int:store_id>/products')

# Initialize schemas
product_create_schema = ProductCreateSchema()
product_update_schema = ProductUpdateSchema()
product_response_schema = ProductViewSchema()
products_response_schema = ProductViewSchema(many=True)

def _flag(name):
    """Boolean query argument; None when absent."""
    value = request.args.get(name)
    if value is None:
        return None
    return value.strip().lower() in ('1', 'true', 'yes')

@products_bp.route('', methods=['GET'])
def list_products(store_id):
    """List a store's products, newest first, with optional filters."""
    # Only an explicit true enables the featured filter
    is_featured = True if _flag('is_featured') else None
    is_archived = bool(_flag('is_archived'))

    products = CatalogQueryService().find(
        store_id,
        category_id=request.args.get('category_id', type=int),
        size_id=request.args.get('size_id', type=int),
        color_id=request.args.get('color_id', type=int),
        is_featured=is_featured,
        is_archived=is_archived,
    )
    return jsonify(products_response_schema.dump(products))

@products_bp.route('/<int:product_id>', methods=['GET'])
def get_product(store_id, product_id):
    """Get a single product."""
    product = CatalogQueryService().get(product_id, store_id)
    return jsonify(product_response_schema.dump(product))

@products_bp.route('', methods=['POST'])
@jwt_required()
@require_store_owner
def create_product(store_id):
    """Create a product with its categories, sizes, colors and images."""
    data = product_create_schema.load(request.get_json(silent=True) or {})

    product = AssociationReplacer().create(store_id, ProductDraft(**data))
    return jsonify(product_response_schema.dump(product)), 201

@products_bp.route('/<int:product_id>', methods=['PATCH'])
@jwt_required()
@require_store_owner
def update_product(store_id, product_id):
    """Update a product; every supplied association list replaces the current one."""
    data = product_update_schema.load(request.get_json(silent=True) or {})

    product = AssociationReplacer().replace(product_id, ProductChanges(**data), store_id=store_id)
    return jsonify(product_response_schema.dump(product))

@products_bp.route('/<int:product_id>', methods=['DELETE'])
@jwt_required()
@require_store_owner
def delete_product(store_id, product_id):
    """Delete a product together with its association rows and images."""
    product = AssociationReplacer().delete(product_id, store_id=store_id)
    return jsonify(product_response_schema.dump(product))
