"""
Database Models for the Store Back-Office

This module contains SQLAlchemy models for stores, the product catalog with
its junction relations, and orders.
"""

from decimal import Decimal

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Numeric, Index, text
from sqlalchemy.orm import declarative_base, relationship, validates
from sqlalchemy.sql import func

Base = declarative_base()

# Largest value the Integer key columns hold (32-bit signed on PostgreSQL)
MAX_ID = 2**31 - 1

# Largest amount Product.price (Numeric(10, 2)) stores
MAX_PRICE = Decimal('99999999.99')

def fits_id_column(value) -> bool:
    """True when the value can be bound to an Integer key column."""
    return isinstance(value, int) and not isinstance(value, bool) and -MAX_ID - 1 <= value <= MAX_ID

class Store(Base):
    """Store model, the root of all catalog and order data."""
    __tablename__ = 'stores'

    id = Column(Integer, primary_key=True)
    owner_id = Column(String(255), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    products = relationship("Product", back_populates="store", cascade="all, delete-orphan")
    categories = relationship("Category", back_populates="store", cascade="all, delete-orphan")
    sizes = relationship("Size", back_populates="store", cascade="all, delete-orphan")
    colors = relationship("Color", back_populates="store", cascade="all, delete-orphan")
    orders = relationship("Order", back_populates="store", cascade="all, delete-orphan")

    @validates('name')
    def validate_name(self, key, name):
        if not name or len(name.strip()) == 0:
            raise ValueError("Store name cannot be empty")
        return name.strip()

    def __repr__(self):
        return f"<Store(id={self.id}, name='{self.name}')>"

class Category(Base):
    """Category a product can be filed under."""
    __tablename__ = 'categories'

    id = Column(Integer, primary_key=True)
    store_id = Column(Integer, ForeignKey('stores.id', ondelete='CASCADE'), nullable=False, index=True)
    label = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    store = relationship("Store", back_populates="categories")

    @validates('label')
    def validate_label(self, key, label):
        if not label or len(label.strip()) == 0:
            raise ValueError("Category label cannot be empty")
        return label.strip()

    def __repr__(self):
        return f"<Category(id={self.id}, label='{self.label}')>"

class Size(Base):
    """Size option, e.g. name 'Large' with value 'L'."""
    __tablename__ = 'sizes'

    id = Column(Integer, primary_key=True)
    store_id = Column(Integer, ForeignKey('stores.id', ondelete='CASCADE'), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    value = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    store = relationship("Store", back_populates="sizes")

    def __repr__(self):
        return f"<Size(id={self.id}, name='{self.name}', value='{self.value}')>"

class Color(Base):
    """Color option, e.g. name 'Black' with value '#000000'."""
    __tablename__ = 'colors'

    id = Column(Integer, primary_key=True)
    store_id = Column(Integer, ForeignKey('stores.id', ondelete='CASCADE'), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    value = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    store = relationship("Store", back_populates="colors")

    def __repr__(self):
        return f"<Color(id={self.id}, name='{self.name}', value='{self.value}')>"

class Product(Base):
    """Product model. Category, size and color sets live in junction rows."""
    __tablename__ = 'products'

    id = Column(Integer, primary_key=True)
    store_id = Column(Integer, ForeignKey('stores.id', ondelete='CASCADE'), nullable=False, index=True)
    name = Column(String(500), nullable=False)

    # Fixed-point price, read back as Decimal
    price = Column(Numeric(10, 2), nullable=False)

    # Status
    is_featured = Column(Boolean, default=False, nullable=False)
    is_archived = Column(Boolean, default=False, nullable=False)

    # Audit fields
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    store = relationship("Store", back_populates="products")
    category_links = relationship(
        "ProductCategory", back_populates="product",
        cascade="all, delete-orphan", passive_deletes=True,
        order_by="ProductCategory.position"
    )
    size_links = relationship(
        "ProductSize", back_populates="product",
        cascade="all, delete-orphan", passive_deletes=True,
        order_by="ProductSize.position"
    )
    color_links = relationship(
        "ProductColor", back_populates="product",
        cascade="all, delete-orphan", passive_deletes=True,
        order_by="ProductColor.position"
    )
    images = relationship(
        "Image", back_populates="product",
        cascade="all, delete-orphan", passive_deletes=True,
        order_by="Image.id"
    )
    # Products referenced by orders cannot be deleted; the FK rejects it
    order_items = relationship("OrderItem", back_populates="product", passive_deletes="all")

    # Indexes
    __table_args__ = (
        Index('idx_product_store_archived', 'store_id', 'is_archived'),
        Index('idx_product_store_featured', 'store_id', 'is_featured'),
        Index('idx_product_created', 'created_at'),
    )

    @validates('name')
    def validate_name(self, key, name):
        if not name or len(name.strip()) == 0:
            raise ValueError("Product name cannot be empty")
        return name.strip()

    @validates('price')
    def validate_price(self, key, price):
        if price is not None and price < 0:
            raise ValueError("Price cannot be negative")
        return price

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}')>"

class Image(Base):
    """Product image; owned exclusively by one product."""
    __tablename__ = 'images'

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey('products.id', ondelete='CASCADE'), nullable=False, index=True)
    url = Column(String(1000), nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    product = relationship("Product", back_populates="images")

    def __repr__(self):
        return f"<Image(id={self.id}, product_id={self.product_id})>"

class ProductCategory(Base):
    """Junction row pairing a product with a category."""
    __tablename__ = 'product_categories'

    product_id = Column(Integer, ForeignKey('products.id', ondelete='CASCADE'), primary_key=True)
    category_id = Column(Integer, ForeignKey('categories.id', ondelete='CASCADE'), primary_key=True, index=True)
    position = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)

    product = relationship("Product", back_populates="category_links")
    category = relationship("Category", lazy="joined")

    def __repr__(self):
        return f"<ProductCategory(product_id={self.product_id}, category_id={self.category_id})>"

class ProductSize(Base):
    """Junction row pairing a product with a size."""
    __tablename__ = 'product_sizes'

    product_id = Column(Integer, ForeignKey('products.id', ondelete='CASCADE'), primary_key=True)
    size_id = Column(Integer, ForeignKey('sizes.id', ondelete='CASCADE'), primary_key=True, index=True)
    position = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)

    product = relationship("Product", back_populates="size_links")
    size = relationship("Size", lazy="joined")

    def __repr__(self):
        return f"<ProductSize(product_id={self.product_id}, size_id={self.size_id})>"

class ProductColor(Base):
    """Junction row pairing a product with a color."""
    __tablename__ = 'product_colors'

    product_id = Column(Integer, ForeignKey('products.id', ondelete='CASCADE'), primary_key=True)
    color_id = Column(Integer, ForeignKey('colors.id', ondelete='CASCADE'), primary_key=True, index=True)
    position = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)

    product = relationship("Product", back_populates="color_links")
    color = relationship("Color", lazy="joined")

    def __repr__(self):
        return f"<ProductColor(product_id={self.product_id}, color_id={self.color_id})>"

class Order(Base):
    """Customer order. Created at checkout, marked paid by the payment webhook."""
    __tablename__ = 'orders'

    id = Column(Integer, primary_key=True)
    store_id = Column(Integer, ForeignKey('stores.id', ondelete='CASCADE'), nullable=False, index=True)
    is_paid = Column(Boolean, default=False, nullable=False)
    phone = Column(String(50), default='', nullable=False)
    address = Column(String(1000), default='', nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    store = relationship("Store", back_populates="orders")
    order_items = relationship(
        "OrderItem", back_populates="order",
        cascade="all, delete-orphan", passive_deletes=True,
        order_by="OrderItem.id"
    )

    __table_args__ = (
        Index('idx_order_store_paid', 'store_id', 'is_paid'),
    )

    def __repr__(self):
        return f"<Order(id={self.id}, store_id={self.store_id}, is_paid={self.is_paid})>"

class OrderItem(Base):
    """Line of an order; belongs to exactly one order."""
    __tablename__ = 'order_items'

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey('orders.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey('products.id'), nullable=False, index=True)

    order = relationship("Order", back_populates="order_items")
    product = relationship("Product", back_populates="order_items")

    def __repr__(self):
        return f"<OrderItem(id={self.id}, order_id={self.order_id}, product_id={self.product_id})>"

class ProcessedWebhookEvent(Base):
    """Ledger of payment provider events already applied."""
    __tablename__ = 'processed_webhook_events'

    event_id = Column(String(255), primary_key=True)
    event_type = Column(String(100), nullable=False)
    order_id = Column(Integer, ForeignKey('orders.id', ondelete='SET NULL'), index=True)
    processed_at = Column(DateTime, default=func.now(), nullable=False)

    def __repr__(self):
        return f"<ProcessedWebhookEvent(event_id='{self.event_id}', order_id={self.order_id})>"

# Create indexes for performance
def create_performance_indexes(engine):
    """Create additional performance indexes."""
    indexes = [
        # Newest-first product listing per store
        "CREATE INDEX IF NOT EXISTS idx_products_store_created ON products(store_id, created_at)",

        # Newest-first order listing per store
        "CREATE INDEX IF NOT EXISTS idx_orders_store_created ON orders(store_id, created_at)",

        # Junction lookups by product in association order
        "CREATE INDEX IF NOT EXISTS idx_product_categories_position ON product_categories(product_id, position)",
        "CREATE INDEX IF NOT EXISTS idx_product_sizes_position ON product_sizes(product_id, position)",
        "CREATE INDEX IF NOT EXISTS idx_product_colors_position ON product_colors(product_id, position)",
    ]

    with engine.connect() as conn:
        for index_sql in indexes:
            conn.execute(text(index_sql))
        conn.commit()
