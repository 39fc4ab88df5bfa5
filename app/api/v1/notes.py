"""Notes CRUD — every query scoped to the caller's tenant."""

import json
import logging
import uuid
from datetime import timedelta
from enum import StrEnum

from fastapi import APIRouter, Query, status
from pydantic import BaseModel
from sqlalchemy import Text, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.api.deps import Member
from app.api.pagination import Pagination, paginate
from app.core.errors import Forbidden, InvalidRequest, NotFound
from app.models.base import utcnow
from app.models.note import Note, NoteAuthor, NoteCreate, NoteRead, NoteUpdate
from app.models.tenant import TenantPlan
from app.models.user import User
from app.services.policies import can_modify
from app.services.subscription import can_create_note, count_notes, reserve_note_slot

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notes", tags=["notes"])

MAX_TAG_FILTERS = 10


class NoteSortField(StrEnum):
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"
    TITLE = "title"


class SortOrder(StrEnum):
    ASC = "asc"
    DESC = "desc"


# ── Schemas ──────────────────────────────────────────────────

class NotePage(BaseModel):
    notes: list[NoteRead]
    pagination: Pagination


class AuthorCount(BaseModel):
    author: str
    count: int


class SubscriptionInfo(BaseModel):
    plan: TenantPlan
    max_notes: int
    current_notes: int
    can_create_more: bool
    is_pro: bool


class NoteStats(BaseModel):
    total_notes: int
    recent_notes: int
    notes_by_user: list[AuthorCount]
    subscription: SubscriptionInfo


def _to_read(note: Note, author: User) -> NoteRead:
    return NoteRead(
        id=note.id,
        tenant_id=note.tenant_id,
        title=note.title,
        content=note.content,
        tags=note.tag_list,
        is_archived=note.is_archived,
        author=NoteAuthor(id=author.id, email=author.email, role=author.role),
        created_at=note.created_at,
        updated_at=note.updated_at,
    )


# ── Routes ───────────────────────────────────────────────────

@router.get("/stats", response_model=NoteStats)
async def get_notes_stats(ctx: Member) -> NoteStats:
    session = ctx.session
    tenant = ctx.tenant
    active = (Note.tenant_id == tenant.id, Note.is_archived == False)  # noqa: E712

    total = (await session.execute(
        select(func.count()).select_from(Note).where(*active)
    )).scalar_one()
    recent = (await session.execute(
        select(func.count()).select_from(Note).where(
            *active, Note.created_at >= utcnow() - timedelta(days=7),
        )
    )).scalar_one()
    by_user = (await session.execute(
        select(User.email, func.count(Note.id))
        .join(User, User.id == Note.author_id)
        .where(*active)
        .group_by(User.email)
        .order_by(User.email)
    )).all()

    return NoteStats(
        total_notes=total,
        recent_notes=recent,
        notes_by_user=[AuthorCount(author=email, count=count) for email, count in by_user],
        subscription=SubscriptionInfo(
            plan=tenant.plan,
            max_notes=tenant.max_notes,
            current_notes=await count_notes(session, tenant.id),
            can_create_more=await can_create_note(session, tenant),
            is_pro=tenant.is_pro,
        ),
    )


@router.get("", response_model=NotePage)
async def list_notes(
    ctx: Member,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: str | None = Query(None, max_length=100),
    tags: str | None = Query(None, description="Comma-separated, matches any"),
    sort_by: NoteSortField = NoteSortField.CREATED_AT,
    sort_order: SortOrder = SortOrder.DESC,
) -> NotePage:
    conditions = [Note.tenant_id == ctx.tenant.id, Note.is_archived == False]  # noqa: E712

    if search and search.strip():
        term = search.strip().lower()
        conditions.append(or_(
            func.lower(Note.title, type_=Text).contains(term, autoescape=True),
            func.lower(Note.content, type_=Text).contains(term, autoescape=True),
        ))

    if tags:
        wanted = [t.strip().lower() for t in tags.split(",") if t.strip()]
        if len(wanted) > MAX_TAG_FILTERS:
            raise InvalidRequest(f"Maximum {MAX_TAG_FILTERS} tags allowed in filter")
        if wanted:
            # tags column holds a JSON array; match the quoted element
            conditions.append(or_(*(
                Note.tags.contains(json.dumps(t), autoescape=True) for t in wanted
            )))

    column = getattr(Note, sort_by.value)
    order = column.asc() if sort_order == SortOrder.ASC else column.desc()

    total = (await ctx.session.execute(
        select(func.count()).select_from(Note).where(*conditions)
    )).scalar_one()
    stmt = (
        select(Note, User)
        .join(User, User.id == Note.author_id)
        .where(*conditions)
        .order_by(order)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    rows = (await ctx.session.execute(stmt)).all()
    return NotePage(
        notes=[_to_read(note, author) for note, author in rows],
        pagination=paginate(page, limit, total),
    )


@router.post("", response_model=NoteRead, status_code=status.HTTP_201_CREATED)
async def create_note(body: NoteCreate, ctx: Member) -> NoteRead:
    session = ctx.session
    user = ctx.user
    tenant = await reserve_note_slot(session, ctx.tenant.id)

    # Construction-time invariant: the note lives in its author's tenant.
    if user.tenant_id != tenant.id:
        raise Forbidden("Note tenant must match author tenant")

    note = Note(
        tenant_id=tenant.id,
        author_id=user.id,
        title=body.title,
        content=body.content,
        tags=json.dumps(body.tags),
    )
    session.add(note)
    await session.commit()
    await session.refresh(note)
    return _to_read(note, user)


@router.get("/{note_id}", response_model=NoteRead)
async def get_note(note_id: uuid.UUID, ctx: Member) -> NoteRead:
    note, author = await _get_or_404(note_id, ctx.tenant.id, ctx.session)
    return _to_read(note, author)


@router.put("/{note_id}", response_model=NoteRead)
async def update_note(note_id: uuid.UUID, body: NoteUpdate, ctx: Member) -> NoteRead:
    note, author = await _get_or_404(note_id, ctx.tenant.id, ctx.session)
    if not can_modify(note, ctx.user):
        raise Forbidden("Access denied. You can only edit your own notes.")

    update_data = body.model_dump(exclude_unset=True, exclude_none=True)
    if "tags" in update_data:
        update_data["tags"] = json.dumps(update_data["tags"])
    for field, value in update_data.items():
        setattr(note, field, value)

    note.touch()
    ctx.session.add(note)
    await ctx.session.commit()
    await ctx.session.refresh(note)
    return _to_read(note, author)


@router.delete("/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_note(note_id: uuid.UUID, ctx: Member) -> None:
    note, _ = await _get_or_404(note_id, ctx.tenant.id, ctx.session)
    if not can_modify(note, ctx.user):
        raise Forbidden("Access denied. You can only delete your own notes.")

    await ctx.session.delete(note)
    await ctx.session.commit()
    logger.info("Note %s deleted by %s", note_id, ctx.user.id)


# ── Internal helper ───────────────────────────────────────────

async def _get_or_404(
    note_id: uuid.UUID, tenant_id: uuid.UUID, session: AsyncSession
) -> tuple[Note, User]:
    stmt = (
        select(Note, User)
        .join(User, User.id == Note.author_id)
        .where(Note.id == note_id, Note.tenant_id == tenant_id)
    )
    row = (await session.execute(stmt)).one_or_none()
    if row is None:
        raise NotFound("Note not found")
    return row[0], row[1]
