from datetime import datetime
from typing import Optional, List
from uuid import UUID
from pydantic import BaseModel, Field

from app.modules.catalog.models import AccessType
from app.modules.catalog.schemas import CategoryRead, TagRead

class AuthorRead(BaseModel):
    id: UUID
    name: Optional[str] = None

    class Config:
        from_attributes = True

class BlogSummary(BaseModel):
    id: UUID
    title: str
    slug: str
    excerpt: Optional[str] = None
    cover_image: Optional[str] = None
    access_type: AccessType
    price: Optional[float] = None
    featured: bool = False
    published: bool = False
    published_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    category: Optional[CategoryRead] = None
    tags: List[TagRead] = []
    author: Optional[AuthorRead] = None

    class Config:
        from_attributes = True

class BlogRead(BlogSummary):
    content: Optional[str] = None
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    keywords: List[str] = []
    updated_at: Optional[datetime] = None

class BlogDetail(BlogRead):
    has_access: bool = False
    requires_purchase: bool = False
    preview: Optional[str] = None

class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int

class BlogList(BaseModel):
    blogs: List[BlogSummary]
    pagination: Pagination

class BlogCreate(BaseModel):
    title: str = Field(min_length=1)
    slug: str = Field(min_length=1)
    content: str = Field(min_length=1)
    excerpt: Optional[str] = None
    cover_image: Optional[str] = None
    access_type: AccessType = AccessType.FREE
    price: Optional[float] = None
    published: bool = False
    featured: bool = False
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    keywords: Optional[List[str]] = None
    category_id: Optional[UUID] = None
    tags: List[str] = []

class BlogUpdate(BaseModel):
    title: Optional[str] = None
    slug: Optional[str] = None
    content: Optional[str] = None
    excerpt: Optional[str] = None
    cover_image: Optional[str] = None
    access_type: Optional[AccessType] = None
    price: Optional[float] = None
    published: Optional[bool] = None
    featured: Optional[bool] = None
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    keywords: Optional[List[str]] = None
    category_id: Optional[UUID] = None
    tags: Optional[List[str]] = None
