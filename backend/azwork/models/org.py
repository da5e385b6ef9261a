from __future__ import annotations

from ..extensions import db
from azwork.time_utils import to_utc_z, to_iso_date


class Department(db.Model):
    """
    Global departments with stable slugs.

    WHY: A staff member's department decides whether they act in a finance
    capacity. The slug (not the display name) is what the policy compares,
    so renaming "Finance" in the UI does not change anyone's access.
    """
    __tablename__ = "departments"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_departments_name"),
        db.UniqueConstraint("slug", name="uq_departments_slug"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    slug = db.Column(db.String(160), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<Department id={self.id} slug={self.slug!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "created_at": to_utc_z(self.created_at),
        }


class Grant(db.Model):
    """Funding grants that budgets draw from."""
    __tablename__ = "grants"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_grants_name"),
        db.UniqueConstraint("grant_code", name="uq_grants_code"),
        db.Index("ix_grants_deleted_at", "deleted_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    grant_code = db.Column(db.String(100), nullable=True)
    description = db.Column(db.Text, nullable=True)
    start_date = db.Column(db.Date, nullable=True)
    end_date = db.Column(db.Date, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "grant_code": self.grant_code,
            "description": self.description,
            "start_date": to_iso_date(self.start_date),
            "end_date": to_iso_date(self.end_date),
        }
