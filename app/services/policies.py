"""Pure authorization decisions over already-loaded records."""

import uuid

from app.core.errors import InvalidRequest
from app.models.note import Note
from app.models.user import User, UserRole


def is_admin(user: User) -> bool:
    return user.role == UserRole.ADMIN


def is_member_or_higher(user: User) -> bool:
    return user.role in (UserRole.MEMBER, UserRole.ADMIN)


def can_modify(note: Note, user: User) -> bool:
    """May ``user`` update or delete ``note``?

    Admins act on every note of their own tenant; everyone else only on
    notes they authored. Callers fetch notes pre-filtered by tenant, so a
    foreign note never reaches this function.
    """
    if is_admin(user) and user.tenant_id == note.tenant_id:
        return True
    return note.author_id == user.id


def ensure_not_self_demotion(actor: User, target_id: uuid.UUID, new_role: UserRole) -> None:
    if target_id == actor.id and new_role != UserRole.ADMIN:
        raise InvalidRequest("You cannot remove your own admin privileges")


def ensure_not_self_deactivation(actor: User, target_id: uuid.UUID) -> None:
    if target_id == actor.id:
        raise InvalidRequest("You cannot deactivate your own account")
