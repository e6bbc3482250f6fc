"""User directory and organisational structure models."""

from __future__ import annotations

import re
import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, Field, field_validator

from civictrack.core.types import UserRole, UserStatus


class User(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    email: str = ""
    phone: str | None = None
    role: UserRole = UserRole.REPORTER
    status: UserStatus = UserStatus.ACTIVE
    department: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def active(self) -> bool:
        return self.status == UserStatus.ACTIVE


class OfficerCandidate(BaseModel):
    """Read-only projection of an officer used for auto-assignment."""

    id: str
    active: bool = True
    department_label: str | None = None

    @classmethod
    def from_user(cls, user: User) -> OfficerCandidate:
        return cls(id=user.id, active=user.active, department_label=user.department)


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9\s-]", "", name.lower().strip())
    slug = re.sub(r"\s+", "-", slug)
    return re.sub(r"-+", "-", slug)


class Category(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    slug: str = ""
    description: str = ""
    keywords: list[str] = Field(default_factory=list)
    is_deleted: bool = False

    def model_post_init(self, __context: object) -> None:
        if not self.slug:
            self.slug = slugify(self.name)

    @field_validator("keywords")
    @classmethod
    def _clean_keywords(cls, value: list[str]) -> list[str]:
        seen: set[str] = set()
        cleaned: list[str] = []
        for kw in value:
            kw = (kw or "").strip().lower()
            if kw and len(kw) <= 40 and kw not in seen:
                seen.add(kw)
                cleaned.append(kw)
        return cleaned


class Department(BaseModel):
    """A department owns a set of categories and directly links officers.

    ``officer_ids`` order is significant: it is the first segment of the
    auto-assignment candidate pool.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    description: str = ""
    officer_ids: list[str] = Field(default_factory=list)
    category_ids: list[str] = Field(default_factory=list)
    is_deleted: bool = False

    @field_validator("officer_ids", "category_ids")
    @classmethod
    def _dedupe(cls, value: list[str]) -> list[str]:
        return list(dict.fromkeys(value))
