from datetime import datetime, timezone
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from models import Post, User, utcnow


# ---------- Auth ----------
class LoginIn(BaseModel):
    username: str
    password: str

class RegisterIn(BaseModel):
    username: str = Field(min_length=1, max_length=64, pattern=r"^[A-Za-z0-9_.-]+$")
    password: str = Field(min_length=8)

class TokenOut(BaseModel):
    token: str


# ---------- Posts ----------
class PostIn(BaseModel):
    """Sanitized input for creating or replacing a post.

    Owner fields in the payload are ignored; ownership always comes from the caller.
    Pass ``context={"now": ...}`` to pin the clock used by the ``published_at`` check.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=255)
    content: str = Field(min_length=1)
    is_draft: bool = False
    published_at: Optional[datetime] = None

    @field_validator("published_at")
    @classmethod
    def not_in_past(cls, v: Optional[datetime], info: ValidationInfo):
        if v is None:
            return v
        if v.tzinfo is not None:
            v = v.astimezone(timezone.utc).replace(tzinfo=None)
        now = (info.context or {}).get("now") or utcnow()
        if v < now:
            raise ValueError("published_at must be a date after or equal to now")
        return v


def _iso(dt: Optional[datetime]) -> Optional[str]:
    # stored naive UTC; spell out the offset for clients
    return dt.replace(tzinfo=timezone.utc).isoformat() if dt else None


class UserOut(BaseModel):
    id: int
    username: str

    @classmethod
    def from_orm_user(cls, u: User):
        return cls(id=u.id, username=u.username)


class PostOut(BaseModel):
    id: int
    title: str
    content: str
    is_draft: bool
    published_at: Optional[str]
    owner_id: int
    owner: UserOut
    created_at: str
    updated_at: str

    @classmethod
    def from_orm_post(cls, p: Post):
        return cls(
            id=p.id, title=p.title, content=p.content, is_draft=p.is_draft,
            published_at=_iso(p.published_at),
            owner_id=p.owner_id, owner=UserOut.from_orm_user(p.owner),
            created_at=_iso(p.created_at), updated_at=_iso(p.updated_at)
        )


class PageOut(BaseModel):
    data: List[PostOut]
    current_page: int
    per_page: int
    total: int
    last_page: int
