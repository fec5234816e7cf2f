from __future__ import annotations

from ..extensions import db
from podcount.time_utils import to_utc_z

class Factory(db.Model):
    """
    Tenant root: every user and form belongs to a factory location.

    DESIGN:
    - Users reference a factory weakly (factory_id nullable)
    - Forms always belong to exactly one factory
    - Form names are unique within a factory, not globally
    - A factory can only be deleted once no users reference it
    """
    __tablename__ = "factories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)
    location = db.Column(db.String(255), nullable=False)

    # PROCESSING, STORAGE, OFFICE, OTHER, CONVENTIONAL, ORGANIC
    type = db.Column(db.String(16), nullable=False, default="OTHER")

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Factory id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "location": self.location,
            "type": self.type,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
