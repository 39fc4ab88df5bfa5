"""Import all models so SQLModel.metadata picks them up."""

from app.models.note import Note, NoteCreate, NoteRead, NoteUpdate
from app.models.tenant import Tenant, TenantDetail, TenantPlan, TenantPublic, TenantRead
from app.models.user import User, UserInvite, UserRead, UserRole

__all__ = [
    "Note",
    "NoteCreate",
    "NoteRead",
    "NoteUpdate",
    "Tenant",
    "TenantDetail",
    "TenantPlan",
    "TenantPublic",
    "TenantRead",
    "User",
    "UserInvite",
    "UserRead",
    "UserRole",
]
