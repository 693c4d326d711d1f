from __future__ import annotations

from ..extensions import db
from backoffice.time_utils import to_utc_z

class Organization(db.Model):
    """
    Multi-tenant root: Every tenant is an Organization.

    WHY: Enables shared-database multi-tenancy with strict isolation.
    All products, purchases, sales, and customers belong to exactly one
    organization. No data may cross organization boundaries.

    DESIGN:
    - Organizations are the tenant boundary
    - All metrics queries must be scoped by org_id
    - stock_accounting_method overrides the configured costing method
      (FIFO, LIFO, WAC) for this tenant when set
    """
    __tablename__ = "organizations"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    code = db.Column(db.String(32), nullable=True, unique=True, index=True)  # Short code for lookups

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    stock_accounting_method = db.Column(db.String(8), nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Organization id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "is_active": self.is_active,
            "stock_accounting_method": self.stock_accounting_method,
            "created_at": to_utc_z(self.created_at),
        }
