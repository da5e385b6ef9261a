from __future__ import annotations

from ..extensions import db
from azwork.time_utils import to_utc_z


class Vendor(db.Model):
    """
    Vendors paid through budget allocations.

    WHY: Some vendors (training providers, supportive services) bill per
    client, so allocations against them must name the client. That rule
    lives on the vendor as client_name_required.

    Soft delete sets deleted_at and clears is_active; restore reverses both.
    """
    __tablename__ = "vendors"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_vendors_name"),
        db.Index("ix_vendors_active", "is_active"),
        db.Index("ix_vendors_deleted_at", "deleted_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    client_name_required = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<Vendor id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "client_name_required": self.client_name_required,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "deleted_at": to_utc_z(self.deleted_at),
        }
