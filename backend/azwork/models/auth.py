from __future__ import annotations

from ..extensions import db
from azwork.time_utils import to_utc_z


class User(db.Model):
    """
    Staff, director, administrator, and kiosk accounts.

    WHY: Every allocation write is attributed (created_by, updated_by,
    fin_processed_by). No shared logins.

    Role and department together drive the allocation policy. Both are
    re-read on every request, so a department move takes effect on the
    next page load.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("username", name="uq_users_username"),
        db.Index("ix_users_department_id", "department_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    username = db.Column(db.String(50), nullable=False)
    full_name = db.Column(db.String(100), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    job_title = db.Column(db.String(100), nullable=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    # kiosk | staff | director | administrator
    role = db.Column(db.String(32), nullable=False, default="kiosk")

    department_id = db.Column(db.Integer, db.ForeignKey("departments.id"), nullable=True)

    # Primary site association; sites themselves are managed elsewhere
    site_id = db.Column(db.Integer, nullable=True, index=True)
    is_site_admin = db.Column(db.Boolean, nullable=False, default=False)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    department = db.relationship("Department", backref=db.backref("users", lazy=True))

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r} role={self.role!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "full_name": self.full_name,
            "email": self.email,
            "job_title": self.job_title,
            "role": self.role,
            "department_id": self.department_id,
            "site_id": self.site_id,
            "is_site_admin": self.is_site_admin,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }
