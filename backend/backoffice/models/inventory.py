from __future__ import annotations

from ..extensions import db

# Purchases in these states have physically arrived and contribute cost batches
RECEIVED_PURCHASE_STATUSES = ("RECEIVED", "COMPLETED")


class Product(db.Model):
    """
    Product master data.

    MULTI-TENANT: Products are scoped to organizations via org_id.

    STOCK: stock_quantity is the product's own stock. Variants carry their
    own stock_quantity; total stock is own + all variants. This table is
    written by catalog and receiving workflows, the metrics engine only reads it.

    COST: cost_price_cents is a static, manually maintained estimate. It may
    be NULL or 0 and may disagree with actual purchase batch costs.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("org_id", "sku", name="uq_products_org_sku"),
        db.Index("ix_products_org_name", "org_id", "name"),
        db.Index("ix_products_org_active", "org_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)

    sku = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)

    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    min_stock_level = db.Column(db.Integer, nullable=False, default=0)

    # Authoritative storage in cents (frontend may only format for display)
    cost_price_cents = db.Column(db.Integer, nullable=True)
    price_cents = db.Column(db.Integer, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    organization = db.relationship("Organization", backref=db.backref("products", lazy=True))
    variants = db.relationship(
        "ProductVariant",
        back_populates="product",
        order_by="ProductVariant.id",
        lazy="select",
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r} org_id={self.org_id}>"


class ProductVariant(db.Model):
    """Size/colour style variant. No cost of its own; inherits the parent's."""
    __tablename__ = "product_variants"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64), nullable=True)
    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    product = db.relationship("Product", back_populates="variants")


class Vendor(db.Model):
    """
    Supplier of purchased stock.

    MULTI-TENANT: Vendors are scoped to organizations via org_id.
    """
    __tablename__ = "vendors"
    __table_args__ = (
        db.UniqueConstraint("org_id", "code", name="uq_vendors_org_code"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    code = db.Column(db.String(64), nullable=True, index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    organization = db.relationship("Organization", backref=db.backref("vendors", lazy=True))

    def __repr__(self) -> str:
        return f"<Vendor id={self.id} name={self.name!r} org_id={self.org_id}>"


class Purchase(db.Model):
    """
    Purchase order header.

    LIFECYCLE:
    1. DRAFT: Created, lines being added
    2. ORDERED: Sent to vendor, nothing received yet
    3. RECEIVED / COMPLETED: Goods arrived; lines carry quantity_received
    4. CANCELLED: Abandoned

    Only RECEIVED and COMPLETED purchases produce cost batches.
    created_at is the FIFO ordering key for its lines.
    """
    __tablename__ = "purchases"
    __table_args__ = (
        db.UniqueConstraint("org_id", "document_number", name="uq_purchases_org_docnum"),
        db.Index("ix_purchases_org_status_created", "org_id", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=True, index=True)

    document_number = db.Column(db.String(64), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="DRAFT", index=True)

    total_amount_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    vendor = db.relationship("Vendor", backref=db.backref("purchases", lazy=True))
    lines = db.relationship("PurchaseLine", back_populates="purchase", lazy=True)

    def __repr__(self) -> str:
        return f"<Purchase id={self.id} doc_num={self.document_number!r} status={self.status}>"


class PurchaseLine(db.Model):
    """
    Individual line items on a purchase.

    product_id is nullable: deleting a product detaches its purchase history
    instead of deleting it.
    """
    __tablename__ = "purchase_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id"), nullable=False, index=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    quantity_ordered = db.Column(db.Integer, nullable=False, default=0)
    quantity_received = db.Column(db.Integer, nullable=False, default=0)

    # Unit cost in cents (required for COGS calculation)
    unit_cost_cents = db.Column(db.Integer, nullable=False, default=0)

    purchase = db.relationship("Purchase", back_populates="lines")
    product = db.relationship("Product")
