import re
import logging
import math
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, func, or_, update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ValidationError, NotFound
from app.modules.catalog import models, schemas

logger = logging.getLogger(__name__)

def slugify(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")

# Categories

async def list_categories(db: AsyncSession) -> List[models.Category]:
    result = await db.execute(select(models.Category).order_by(models.Category.name.asc()))
    return result.scalars().all()

async def get_category(db: AsyncSession, category_id: UUID) -> models.Category:
    category = await db.get(models.Category, category_id)
    if not category:
        raise NotFound("Category not found")
    return category

async def _ensure_unique(db: AsyncSession, model, name: str, slug: str, exclude_id: Optional[UUID] = None):
    query = select(model).where(or_(model.name == name, model.slug == slug))
    if exclude_id:
        query = query.where(model.id != exclude_id)
    existing = (await db.execute(query)).scalars().first()
    if existing:
        label = "Category" if model is models.Category else "Tag"
        raise ValidationError(f"{label} with this name or slug already exists")

async def create_category(db: AsyncSession, data: schemas.CategoryCreate) -> models.Category:
    slug = slugify(data.slug or data.name)
    await _ensure_unique(db, models.Category, data.name, slug)

    category = models.Category(name=data.name, slug=slug, description=data.description)
    db.add(category)
    await db.commit()
    await db.refresh(category)
    return category

async def update_category(db: AsyncSession, category_id: UUID, data: schemas.CategoryUpdate) -> models.Category:
    category = await get_category(db, category_id)
    name = data.name or category.name
    slug = slugify(data.slug) if data.slug else category.slug
    await _ensure_unique(db, models.Category, name, slug, exclude_id=category.id)

    category.name = name
    category.slug = slug
    if data.description is not None:
        category.description = data.description
    await db.commit()
    await db.refresh(category)
    return category

async def delete_category(db: AsyncSession, category_id: UUID) -> None:
    category = await get_category(db, category_id)
    # Content keeps existing, only loses its category
    from app.modules.blogs.models import Blog
    from app.modules.resources.models import Resource
    for model in (Blog, Resource):
        await db.execute(update(model).where(model.category_id == category.id).values(category_id=None))
    await db.delete(category)
    await db.commit()

# Tags

async def list_tags(db: AsyncSession) -> List[schemas.TagWithCounts]:
    blog_counts = (
        select(models.blog_tags.c.tag_id, func.count().label("n"))
        .group_by(models.blog_tags.c.tag_id)
        .subquery()
    )
    resource_counts = (
        select(models.resource_tags.c.tag_id, func.count().label("n"))
        .group_by(models.resource_tags.c.tag_id)
        .subquery()
    )
    result = await db.execute(
        select(
            models.Tag,
            func.coalesce(blog_counts.c.n, 0),
            func.coalesce(resource_counts.c.n, 0),
        )
        .outerjoin(blog_counts, blog_counts.c.tag_id == models.Tag.id)
        .outerjoin(resource_counts, resource_counts.c.tag_id == models.Tag.id)
        .order_by(models.Tag.name.asc())
    )
    return [
        schemas.TagWithCounts(
            id=tag.id,
            name=tag.name,
            slug=tag.slug,
            description=tag.description,
            blog_count=blog_count,
            resource_count=resource_count,
        )
        for tag, blog_count, resource_count in result.all()
    ]

async def get_tag(db: AsyncSession, tag_id: UUID) -> models.Tag:
    tag = await db.get(models.Tag, tag_id)
    if not tag:
        raise NotFound("Tag not found")
    return tag

async def create_tag(db: AsyncSession, data: schemas.TagCreate) -> models.Tag:
    slug = slugify(data.slug or data.name)
    await _ensure_unique(db, models.Tag, data.name, slug)

    tag = models.Tag(name=data.name, slug=slug, description=data.description)
    db.add(tag)
    await db.commit()
    await db.refresh(tag)
    return tag

async def update_tag(db: AsyncSession, tag_id: UUID, data: schemas.TagUpdate) -> models.Tag:
    tag = await get_tag(db, tag_id)
    name = data.name or tag.name
    slug = slugify(data.slug) if data.slug else tag.slug
    await _ensure_unique(db, models.Tag, name, slug, exclude_id=tag.id)

    tag.name = name
    tag.slug = slug
    if data.description is not None:
        tag.description = data.description
    await db.commit()
    await db.refresh(tag)
    return tag

async def delete_tag(db: AsyncSession, tag_id: UUID) -> None:
    tag = await get_tag(db, tag_id)
    await db.execute(delete(models.blog_tags).where(models.blog_tags.c.tag_id == tag.id))
    await db.execute(delete(models.resource_tags).where(models.resource_tags.c.tag_id == tag.id))
    await db.delete(tag)
    await db.commit()

async def resolve_tags(db: AsyncSession, names: List[str]) -> List[models.Tag]:
    """
    Connect tags by name, creating the missing ones.
    Lookup also matches on slug so "Web Dev" and "web-dev" end up on the same tag.
    """
    tags: List[models.Tag] = []
    seen = set()
    for raw in names:
        name = raw.strip()
        slug = slugify(name)
        if not name or not slug or slug in seen:
            continue
        seen.add(slug)

        result = await db.execute(
            select(models.Tag).where(or_(models.Tag.name == name, models.Tag.slug == slug))
        )
        tag = result.scalars().first()
        if not tag:
            tag = models.Tag(name=name, slug=slug)
            db.add(tag)
            logger.info(f"Created tag '{name}'")
        tags.append(tag)
    return tags

# Shared content rules

def validate_pricing(access_type: models.AccessType, price: Optional[float]) -> Optional[float]:
    if access_type == models.AccessType.PAID:
        if price is None or not math.isfinite(price) or round(price * 100) < 1:
            raise ValidationError("Price is required for paid content and must be greater than 0")
        return price
    return None

def default_keywords(title: str) -> List[str]:
    return [word for word in title.lower().split() if len(word) > 3][:5]

async def ensure_category(db: AsyncSession, category_id: Optional[UUID]) -> None:
    if category_id and not await db.get(models.Category, category_id):
        raise ValidationError("Category not found")
