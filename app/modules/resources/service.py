import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple, Dict
from uuid import UUID

from sqlalchemy import select, func, or_, delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ValidationError, NotFound
from app.modules.access import service as access_service
from app.modules.auth.models import User
from app.modules.catalog import service as catalog_service
from app.modules.catalog.models import AccessType, Category
from app.modules.resources import models, schemas

logger = logging.getLogger(__name__)

def _published():
    return select(models.Resource).where(models.Resource.published.is_(True))

def _newest_first(query):
    return query.order_by(models.Resource.published_at.desc(), models.Resource.created_at.desc())

def _strip(resource: models.Resource, has_access: bool) -> schemas.ResourceDetail:
    detail = schemas.ResourceDetail.model_validate(resource)
    if has_access:
        return detail.model_copy(update={"has_access": True, "requires_purchase": False})
    return detail.model_copy(update={
        "content": None,
        "code_blocks": None,
        "has_access": False,
        "requires_purchase": True,
        "preview": access_service.resource_preview(resource),
    })

async def present_many(db: AsyncSession, resources: List[models.Resource], user: Optional[User]) -> List[schemas.ResourceDetail]:
    decisions: Dict[UUID, bool] = await access_service.access_map(db, user, resources)
    return [_strip(r, decisions[r.id]) for r in resources]

async def present_resource(db: AsyncSession, resource: models.Resource, user: Optional[User]) -> schemas.ResourceDetail:
    return _strip(resource, await access_service.can_access(db, user, resource))

async def list_published(
    db: AsyncSession,
    page: int = 1,
    limit: int = 12,
    category: Optional[str] = None,
    access_type: Optional[AccessType] = None,
    search: Optional[str] = None,
) -> Tuple[List[models.Resource], int]:
    query = _published()
    if category:
        query = query.join(Category, models.Resource.category_id == Category.id).where(Category.slug == category)
    if access_type:
        query = query.where(models.Resource.access_type == access_type)
    if search:
        pattern = f"%{search}%"
        query = query.where(or_(
            models.Resource.title.ilike(pattern),
            models.Resource.description.ilike(pattern),
        ))

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0
    result = await db.execute(_newest_first(query).offset((page - 1) * limit).limit(limit))
    return result.scalars().all(), total

async def get_published_by_slug(db: AsyncSession, slug: str) -> models.Resource:
    result = await db.execute(_published().where(models.Resource.slug == slug))
    resource = result.scalars().first()
    if not resource:
        raise NotFound("Resource not found")
    return resource

async def featured_resources(db: AsyncSession, limit: int = 6) -> List[models.Resource]:
    result = await db.execute(
        _newest_first(_published().where(models.Resource.featured.is_(True))).limit(limit)
    )
    return result.scalars().all()

# Admin

async def admin_list(
    db: AsyncSession,
    published: Optional[bool] = None,
    access_type: Optional[AccessType] = None,
    category_id: Optional[UUID] = None,
) -> List[models.Resource]:
    query = select(models.Resource)
    if published is not None:
        query = query.where(models.Resource.published.is_(published))
    if access_type:
        query = query.where(models.Resource.access_type == access_type)
    if category_id:
        query = query.where(models.Resource.category_id == category_id)
    result = await db.execute(query.order_by(models.Resource.created_at.desc()))
    return result.scalars().all()

async def get_resource(db: AsyncSession, resource_id: UUID) -> models.Resource:
    resource = await db.get(models.Resource, resource_id)
    if not resource:
        raise NotFound("Resource not found")
    return resource

async def _ensure_slug_free(db: AsyncSession, slug: str, exclude_id: Optional[UUID] = None):
    query = select(models.Resource.id).where(models.Resource.slug == slug)
    if exclude_id:
        query = query.where(models.Resource.id != exclude_id)
    if (await db.execute(query)).first():
        raise ValidationError("A resource with this slug already exists")

async def create_resource(db: AsyncSession, data: schemas.ResourceCreate, author: User) -> models.Resource:
    slug = catalog_service.slugify(data.slug)
    if not slug:
        raise ValidationError("Slug is required")
    await _ensure_slug_free(db, slug)
    await catalog_service.ensure_category(db, data.category_id)
    price = catalog_service.validate_pricing(data.access_type, data.price)

    resource = models.Resource(
        title=data.title,
        slug=slug,
        description=data.description,
        content=data.content,
        code_blocks=data.code_blocks,
        cover_image=data.cover_image,
        access_type=data.access_type,
        price=price,
        published=data.published,
        featured=data.featured,
        meta_title=data.meta_title or data.title,
        meta_description=data.meta_description or data.description[:160],
        keywords=data.keywords or catalog_service.default_keywords(data.title),
        category_id=data.category_id,
        author_id=author.id,
        published_at=datetime.now(timezone.utc) if data.published else None,
    )
    resource.tags = await catalog_service.resolve_tags(db, data.tags)
    db.add(resource)
    await db.commit()
    await db.refresh(resource)
    logger.info(f"Resource '{resource.slug}' created by {author.email}")
    return resource

async def update_resource(
    db: AsyncSession, resource_id: UUID, data: schemas.ResourceUpdate
) -> Tuple[models.Resource, Optional[str]]:
    resource = await get_resource(db, resource_id)
    changes = data.model_dump(exclude_unset=True)

    if changes.get("slug"):
        slug = catalog_service.slugify(changes["slug"])
        await _ensure_slug_free(db, slug, exclude_id=resource.id)
        changes["slug"] = slug
    if "category_id" in changes:
        await catalog_service.ensure_category(db, changes["category_id"])

    access_type = changes.get("access_type") or resource.access_type
    price = changes["price"] if "price" in changes else resource.price
    changes["price"] = catalog_service.validate_pricing(access_type, price)

    tag_names = changes.pop("tags", None)
    old_cover = None
    if "cover_image" in changes and changes["cover_image"] != resource.cover_image:
        old_cover = resource.cover_image

    if changes.get("published") and not resource.published_at:
        resource.published_at = datetime.now(timezone.utc)

    required = ("title", "slug", "description", "access_type", "published", "featured", "keywords")
    for field, value in changes.items():
        if value is None and field in required:
            continue
        setattr(resource, field, value)

    if tag_names is not None:
        resource.tags = await catalog_service.resolve_tags(db, tag_names)

    await db.commit()
    await db.refresh(resource)
    return resource, old_cover

async def delete_resource(db: AsyncSession, resource_id: UUID) -> Optional[str]:
    resource = await get_resource(db, resource_id)
    cover = resource.cover_image

    await db.execute(delete(models.ResourcePurchase).where(models.ResourcePurchase.resource_id == resource.id))
    resource.tags = []
    await db.delete(resource)
    await db.commit()
    logger.info(f"Resource '{resource.slug}' deleted")
    return cover
