from datetime import datetime
from typing import Optional, List, Any, Dict
from uuid import UUID
from pydantic import BaseModel, Field

from app.modules.catalog.models import AccessType
from app.modules.catalog.schemas import CategoryRead, TagRead
from app.modules.blogs.schemas import AuthorRead, Pagination

class ResourceRead(BaseModel):
    id: UUID
    title: str
    slug: str
    description: str
    content: Optional[str] = None
    code_blocks: Optional[List[Dict[str, Any]]] = None
    cover_image: Optional[str] = None
    access_type: AccessType
    price: Optional[float] = None
    featured: bool = False
    published: bool = False
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    keywords: List[str] = []
    published_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    category: Optional[CategoryRead] = None
    tags: List[TagRead] = []
    author: Optional[AuthorRead] = None

    class Config:
        from_attributes = True

class ResourceDetail(ResourceRead):
    has_access: bool = False
    requires_purchase: bool = False
    preview: Optional[str] = None

class ResourceList(BaseModel):
    resources: List[ResourceDetail]
    pagination: Pagination

class ResourceCreate(BaseModel):
    title: str = Field(min_length=1)
    slug: str = Field(min_length=1)
    description: str = Field(min_length=1)
    content: Optional[str] = None
    code_blocks: Optional[List[Dict[str, Any]]] = None
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

class ResourceUpdate(BaseModel):
    title: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None
    content: Optional[str] = None
    code_blocks: Optional[List[Dict[str, Any]]] = None
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
