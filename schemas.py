"""Schema definitions for request/response validation."""
from decimal import Decimal

from marshmallow import Schema, fields, validate, pre_load, post_load

from models import MAX_PRICE
from product_views import legacy_ids_to_lists

def normalize_request(data):
    """Accept legacy single ids and bare image URL strings."""
    if not isinstance(data, dict):
        return data
    data = legacy_ids_to_lists(data)
    images = data.get('images')
    if isinstance(images, list):
        data['images'] = [{'url': image} if isinstance(image, str) else image for image in images]
    return data

class ImageInputSchema(Schema):
    """Schema for image entries in product requests."""
    url = fields.String(required=True, validate=validate.Length(min=1, max=2000))

class ProductCreateSchema(Schema):
    """Schema for product creation requests."""
    name = fields.String(required=True, validate=validate.Length(min=1, max=255))
    price = fields.Decimal(required=True, places=2, validate=validate.Range(min=Decimal('0.01'), max=MAX_PRICE))
    category_ids = fields.List(fields.Integer(strict=True), required=True, validate=validate.Length(min=1))
    size_ids = fields.List(fields.Integer(strict=True), required=True, validate=validate.Length(min=1))
    color_ids = fields.List(fields.Integer(strict=True), required=True, validate=validate.Length(min=1))
    images = fields.List(fields.Nested(ImageInputSchema), required=True, validate=validate.Length(min=1))
    is_featured = fields.Boolean(load_default=False)
    is_archived = fields.Boolean(load_default=False)

    @pre_load
    def accept_legacy_shapes(self, data, **kwargs):
        return normalize_request(data)

    @post_load
    def flatten_images(self, data, **kwargs):
        data['image_urls'] = [image['url'] for image in data.pop('images')]
        return data

class ProductUpdateSchema(Schema):
    """Schema for partial product updates. Omitted fields stay unchanged."""
    name = fields.String(validate=validate.Length(min=1, max=255))
    price = fields.Decimal(places=2, validate=validate.Range(min=Decimal('0.01'), max=MAX_PRICE))
    category_ids = fields.List(fields.Integer(strict=True))
    size_ids = fields.List(fields.Integer(strict=True))
    color_ids = fields.List(fields.Integer(strict=True))
    images = fields.List(fields.Nested(ImageInputSchema))
    is_featured = fields.Boolean()
    is_archived = fields.Boolean()

    @pre_load
    def accept_legacy_shapes(self, data, **kwargs):
        return normalize_request(data)

    @post_load
    def flatten_images(self, data, **kwargs):
        if 'images' in data:
            data['image_urls'] = [image['url'] for image in data.pop('images')]
        return data

class CategorySchema(Schema):
    id = fields.Integer()
    label = fields.String()
    store_id = fields.Integer()

class SizeSchema(Schema):
    id = fields.Integer()
    name = fields.String()
    value = fields.String()
    store_id = fields.Integer()

class ColorSchema(SizeSchema):
    pass

class ImageSchema(Schema):
    id = fields.Integer()
    url = fields.String()
    product_id = fields.Integer()

class ProductViewSchema(Schema):
    """Schema for product responses, legacy single fields included."""
    id = fields.Integer()
    store_id = fields.Integer()
    name = fields.String()
    price = fields.Float()
    is_featured = fields.Boolean()
    is_archived = fields.Boolean()
    created_at = fields.DateTime(allow_none=True)
    updated_at = fields.DateTime(allow_none=True)
    category = fields.Nested(CategorySchema, allow_none=True)
    size = fields.Nested(SizeSchema, allow_none=True)
    color = fields.Nested(ColorSchema, allow_none=True)
    categories = fields.List(fields.Nested(CategorySchema))
    sizes = fields.List(fields.Nested(SizeSchema))
    colors = fields.List(fields.Nested(ColorSchema))
    images = fields.List(fields.Nested(ImageSchema))

class OrderSchema(Schema):
    """Schema for order listing responses."""
    id = fields.Integer()
    phone = fields.String()
    address = fields.String()
    products = fields.List(fields.String())
    total_price = fields.Float()
    is_paid = fields.Boolean()
    created_at = fields.DateTime()

class RevenueSchema(Schema):
    """Schema for revenue responses."""
    store_id = fields.Integer()
    total_revenue = fields.Float()
    paid_orders = fields.Integer()
