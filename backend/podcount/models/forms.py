from __future__ import annotations

from ..extensions import db
from podcount.time_utils import to_utc_z

class Form(db.Model):
    """
    Data-collection form definition.

    fields holds the JSON schema document ({"sections": [...]}). Older rows
    may still hold a flat list of fields, so callers read it through
    podcount.schema.parse_schema() rather than json.loads().

    DESIGN:
    - (name, factory_id) is unique: two forms in one factory cannot share a name
    - created_by_id is nullable so deleting a user keeps their forms
    - Deleting a form is a service-level cascade (access -> responses -> entries -> form)
    """
    __tablename__ = "forms"
    __table_args__ = (
        db.UniqueConstraint("name", "factory_id", name="uq_forms_name_factory"),
        db.Index("ix_forms_factory_id", "factory_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    # CONVENTIONAL, ORGANIC, IMPORTED
    type = db.Column(db.String(16), nullable=False)

    fields = db.Column(db.Text, nullable=False)

    factory_id = db.Column(db.Integer, db.ForeignKey("factories.id"), nullable=False)
    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    factory = db.relationship("Factory", backref=db.backref("forms", lazy=True))
    created_by = db.relationship("User", backref=db.backref("created_forms", lazy=True))

    def __repr__(self) -> str:
        return f"<Form id={self.id} name={self.name!r} factory_id={self.factory_id}>"

    def to_dict(self) -> dict:
        from podcount.schema import parse_schema

        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "type": self.type,
            "fields": parse_schema(self.fields).to_dict(),
            "factory_id": self.factory_id,
            "factory_name": self.factory.name if self.factory else "Unknown Factory",
            "factory_type": self.factory.type if self.factory else "CONVENTIONAL",
            "created_by_id": self.created_by_id,
            "created_by": {
                "name": self.created_by.name if self.created_by else "System",
                "email": self.created_by.email if self.created_by else None,
            },
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class FormAccess(db.Model):
    """
    Per-user, per-form grant row.

    At most one row per (user_id, form_id); grants are upserted. A missing
    row means no access unless the user is ADMIN or created the form.
    """
    __tablename__ = "form_access"
    __table_args__ = (
        db.UniqueConstraint("user_id", "form_id", name="uq_form_access_user_form"),
        db.Index("ix_form_access_form_id", "form_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    form_id = db.Column(db.Integer, db.ForeignKey("forms.id"), nullable=False)

    can_view = db.Column(db.Boolean, nullable=False, default=True)
    can_edit = db.Column(db.Boolean, nullable=False, default=False)
    can_delete = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    user = db.relationship("User", backref=db.backref("form_access", lazy=True))
    form = db.relationship("Form", backref=db.backref("access", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "form_id": self.form_id,
            "can_view": self.can_view,
            "can_edit": self.can_edit,
            "can_delete": self.can_delete,
            "user": self.user.to_summary() if self.user else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class FormResponse(db.Model):
    """
    One submission of a form: a mapping from field name to scalar value.

    IMMUTABLE: there is no update path. Rows are removed only together with
    their form.
    """
    __tablename__ = "form_responses"
    __table_args__ = (
        db.Index("ix_form_responses_form_created", "form_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    form_id = db.Column(db.Integer, db.ForeignKey("forms.id"), nullable=False)
    data = db.Column(db.JSON, nullable=False)
    submitted_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    form = db.relationship("Form", backref=db.backref("responses", lazy=True))
    submitted_by = db.relationship("User", backref=db.backref("form_responses", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "form_id": self.form_id,
            "form_name": self.form.name if self.form else "Unknown Form",
            "data": self.data,
            "submitted_by_id": self.submitted_by_id,
            "submitted_by": {
                "name": self.submitted_by.name if self.submitted_by else "Unknown User",
                "email": self.submitted_by.email if self.submitted_by else None,
            },
            "created_at": to_utc_z(self.created_at),
        }


class FormEntry(db.Model):
    """
    Legacy submission table kept for existing data.

    New submissions go to FormResponse; entries are counted on the
    dashboard and removed with their form.
    """
    __tablename__ = "form_entries"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    form_id = db.Column(db.Integer, db.ForeignKey("forms.id"), nullable=False, index=True)
    data = db.Column(db.JSON, nullable=False)
    submitted_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    form = db.relationship("Form", backref=db.backref("entries", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "form_id": self.form_id,
            "data": self.data,
            "submitted_by_id": self.submitted_by_id,
            "created_at": to_utc_z(self.created_at),
        }
