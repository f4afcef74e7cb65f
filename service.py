"""Post visibility and ownership rules.

Every operation takes an explicit session, and the mutating ones take the caller's
user id. A post is visible iff it is not a draft and its ``published_at`` is absent
or not in the future. Only the owner of a post may change or delete it.
"""
import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session, selectinload

from models import Post, utcnow
from schemas import PostIn

logger = logging.getLogger(__name__)

PAGE_SIZE = 20


# ---------- Errors ----------
class PostError(Exception):
    status_code = 500
    detail: Any = "Post error"

    def __init__(self, detail: Any = None):
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class InvalidPost(PostError):
    status_code = 422

    def __init__(self, errors: List[Dict[str, Any]]):
        self.errors = errors
        super().__init__(errors)


class NotFound(PostError):
    status_code = 404
    detail = "Not found"


class Forbidden(PostError):
    status_code = 403
    detail = "Forbidden"


# ---------- Queries ----------
@dataclass
class Page:
    items: List[Post]
    page: int
    per_page: int
    total: int

    @property
    def last_page(self) -> int:
        return max(1, math.ceil(self.total / self.per_page))


def visible(now: datetime):
    return and_(
        Post.is_draft.is_(False),
        or_(Post.published_at.is_(None), Post.published_at <= now),
    )


def list_posts(s: Session, page: int = 1, now: Optional[datetime] = None) -> Page:
    """Visible posts, newest publication first, ``PAGE_SIZE`` per page."""
    if page < 1:
        raise InvalidPost([{"loc": ["page"], "msg": "page must be greater than or equal to 1"}])
    now = now or utcnow()
    total = s.scalar(select(func.count()).select_from(Post).where(visible(now)))
    stmt = (
        select(Post)
        .options(selectinload(Post.owner))
        .where(visible(now))
        # unscheduled posts fall back to their creation time
        .order_by(func.coalesce(Post.published_at, Post.created_at).desc(), Post.id.desc())
        .limit(PAGE_SIZE)
    )
    offset = (page - 1) * PAGE_SIZE
    if offset >= (total or 0):
        # past the last page; also keeps huge offsets away from the driver
        return Page(items=[], page=page, per_page=PAGE_SIZE, total=total or 0)
    items = s.execute(stmt.offset(offset)).scalars().all()
    return Page(items=list(items), page=page, per_page=PAGE_SIZE, total=total or 0)


def get_post(s: Session, post_id: int, now: Optional[datetime] = None) -> Post:
    """Hidden posts raise the same ``NotFound`` as missing ones."""
    stmt = (
        select(Post)
        .options(selectinload(Post.owner))
        .where(Post.id == post_id, visible(now or utcnow()))
    )
    p = s.execute(stmt).scalar_one_or_none()
    if p is None:
        raise NotFound()
    return p


# ---------- Mutations ----------
def validate_post(payload: Any, now: Optional[datetime] = None) -> PostIn:
    """Validate a raw payload, collecting every invalid field into one ``InvalidPost``."""
    try:
        return PostIn.model_validate(payload, context={"now": now or utcnow()})
    except ValidationError as e:
        raise InvalidPost([{"loc": list(err["loc"]), "msg": err["msg"]} for err in e.errors()]) from e


def _owned(s: Session, caller_id: int, post_id: int, action: str) -> Post:
    p = s.get(Post, post_id)
    if p is None:
        raise NotFound()
    if p.owner_id != caller_id:
        logger.warning("User %s may not %s post %s owned by %s", caller_id, action, post_id, p.owner_id)
        raise Forbidden()
    return p


def create_post(s: Session, caller_id: int, payload: Any) -> Post:
    """Persist a new post owned by ``caller_id``; ``payload`` is a raw dict or a ``PostIn``."""
    data = validate_post(payload)
    p = Post(**data.model_dump(), owner_id=caller_id)
    s.add(p); s.commit(); s.refresh(p)
    logger.info("User %s created post %s", caller_id, p.id)
    return p


def update_post(s: Session, caller_id: int, post_id: int, payload: Any) -> Post:
    # existence and ownership are checked before the payload
    p = _owned(s, caller_id, post_id, "update")
    data = validate_post(payload)
    # fields left out of the payload keep their stored values
    for k, v in data.model_dump(exclude_unset=True).items(): setattr(p, k, v)
    s.commit(); s.refresh(p)
    logger.info("User %s updated post %s", caller_id, p.id)
    return p


def delete_post(s: Session, caller_id: int, post_id: int) -> None:
    p = _owned(s, caller_id, post_id, "delete")
    s.delete(p); s.commit()
    logger.info("User %s deleted post %s", caller_id, post_id)
