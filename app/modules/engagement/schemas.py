from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, Field

from app.modules.blogs.schemas import AuthorRead, BlogSummary

class CommentCreate(BaseModel):
    blog_id: UUID
    content: str = Field(min_length=1, max_length=5000)

class CommentUpdate(BaseModel):
    content: str = Field(min_length=1, max_length=5000)

class CommentRead(BaseModel):
    id: UUID
    blog_id: UUID
    user_id: UUID
    content: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    user: Optional[AuthorRead] = None

    class Config:
        from_attributes = True

class BookmarkCreate(BaseModel):
    blog_id: UUID

class BookmarkRead(BaseModel):
    id: UUID
    blog_id: UUID
    created_at: Optional[datetime] = None
    blog: Optional[BlogSummary] = None

    class Config:
        from_attributes = True

class BookmarkStatus(BaseModel):
    is_bookmarked: bool
