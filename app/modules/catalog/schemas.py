from typing import Optional
from pydantic import BaseModel, Field
from uuid import UUID

class CategoryBase(BaseModel):
    name: str = Field(min_length=1)
    slug: Optional[str] = None
    description: Optional[str] = None

class CategoryCreate(CategoryBase):
    pass

class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None

class CategoryRead(BaseModel):
    id: UUID
    name: str
    slug: str
    description: Optional[str] = None

    class Config:
        from_attributes = True

class TagCreate(CategoryBase):
    pass

class TagUpdate(CategoryUpdate):
    pass

class TagRead(CategoryRead):
    pass

class TagWithCounts(TagRead):
    blog_count: int = 0
    resource_count: int = 0
