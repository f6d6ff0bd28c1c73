import logging
import math
from datetime import datetime, timezone
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select, func, or_, delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ValidationError, NotFound
from app.modules.access import service as access_service
from app.modules.auth.models import User
from app.modules.blogs import models, schemas
from app.modules.catalog import service as catalog_service
from app.modules.catalog.models import AccessType, Category

logger = logging.getLogger(__name__)

def _published():
    return select(models.Blog).where(models.Blog.published.is_(True))

def _newest_first(query):
    return query.order_by(models.Blog.published_at.desc(), models.Blog.created_at.desc())

def paginate(total: int, page: int, limit: int) -> schemas.Pagination:
    return schemas.Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit) if limit else 0)

async def list_published(
    db: AsyncSession,
    page: int = 1,
    limit: int = 10,
    category: Optional[str] = None,
    access_type: Optional[AccessType] = None,
    search: Optional[str] = None,
) -> Tuple[List[models.Blog], int]:
    query = _published()
    if category:
        query = query.join(Category, models.Blog.category_id == Category.id).where(Category.slug == category)
    if access_type:
        query = query.where(models.Blog.access_type == access_type)
    if search:
        pattern = f"%{search}%"
        query = query.where(or_(
            models.Blog.title.ilike(pattern),
            models.Blog.content.ilike(pattern),
            models.Blog.excerpt.ilike(pattern),
        ))

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0
    result = await db.execute(_newest_first(query).offset((page - 1) * limit).limit(limit))
    return result.scalars().all(), total

async def search_blogs(db: AsyncSession, q: Optional[str], limit: int = 10) -> List[models.Blog]:
    if not q or not q.strip():
        raise ValidationError("Search query is required")
    blogs, _ = await list_published(db, page=1, limit=limit, search=q.strip())
    return blogs

async def related_blogs(
    db: AsyncSession,
    category: Optional[str],
    exclude: Optional[UUID] = None,
    limit: int = 3,
) -> List[models.Blog]:
    if not category:
        raise ValidationError("Category is required")

    query = _published().join(Category, models.Blog.category_id == Category.id).where(Category.slug == category)
    if exclude:
        query = query.where(models.Blog.id != exclude)
    result = await db.execute(_newest_first(query).limit(limit))
    return result.scalars().all()

async def get_published_by_slug(db: AsyncSession, slug: str) -> models.Blog:
    result = await db.execute(_published().where(models.Blog.slug == slug))
    blog = result.scalars().first()
    if not blog:
        raise NotFound("Blog not found")
    return blog

async def present_blog(db: AsyncSession, blog: models.Blog, user: Optional[User]) -> schemas.BlogDetail:
    has_access = await access_service.can_access(db, user, blog)
    detail = schemas.BlogDetail.model_validate(blog)
    if has_access:
        return detail.model_copy(update={"has_access": True, "requires_purchase": False})
    return detail.model_copy(update={
        "content": None,
        "has_access": False,
        "requires_purchase": True,
        "preview": access_service.blog_preview(blog),
    })

async def featured_blogs(db: AsyncSession, limit: int = 6) -> List[models.Blog]:
    result = await db.execute(
        _newest_first(_published().where(models.Blog.featured.is_(True))).limit(limit)
    )
    return result.scalars().all()

async def latest_blogs(db: AsyncSession, limit: int = 6) -> List[models.Blog]:
    result = await db.execute(_newest_first(_published()).limit(limit))
    return result.scalars().all()

# Admin

async def admin_list(
    db: AsyncSession,
    published: Optional[bool] = None,
    access_type: Optional[AccessType] = None,
    category_id: Optional[UUID] = None,
) -> List[models.Blog]:
    query = select(models.Blog)
    if published is not None:
        query = query.where(models.Blog.published.is_(published))
    if access_type:
        query = query.where(models.Blog.access_type == access_type)
    if category_id:
        query = query.where(models.Blog.category_id == category_id)
    result = await db.execute(query.order_by(models.Blog.created_at.desc()))
    return result.scalars().all()

async def get_blog(db: AsyncSession, blog_id: UUID) -> models.Blog:
    blog = await db.get(models.Blog, blog_id)
    if not blog:
        raise NotFound("Blog not found")
    return blog

async def _ensure_slug_free(db: AsyncSession, slug: str, exclude_id: Optional[UUID] = None):
    query = select(models.Blog.id).where(models.Blog.slug == slug)
    if exclude_id:
        query = query.where(models.Blog.id != exclude_id)
    if (await db.execute(query)).first():
        raise ValidationError("A blog with this slug already exists")

async def create_blog(db: AsyncSession, data: schemas.BlogCreate, author: User) -> models.Blog:
    slug = catalog_service.slugify(data.slug)
    if not slug:
        raise ValidationError("Slug is required")
    await _ensure_slug_free(db, slug)
    await catalog_service.ensure_category(db, data.category_id)
    price = catalog_service.validate_pricing(data.access_type, data.price)

    blog = models.Blog(
        title=data.title,
        slug=slug,
        content=data.content,
        excerpt=data.excerpt,
        cover_image=data.cover_image,
        access_type=data.access_type,
        price=price,
        published=data.published,
        featured=data.featured,
        meta_title=data.meta_title or data.title,
        meta_description=data.meta_description or data.excerpt or data.content[:160],
        keywords=data.keywords or catalog_service.default_keywords(data.title),
        category_id=data.category_id,
        author_id=author.id,
        published_at=datetime.now(timezone.utc) if data.published else None,
    )
    blog.tags = await catalog_service.resolve_tags(db, data.tags)
    db.add(blog)
    await db.commit()
    await db.refresh(blog)
    logger.info(f"Blog '{blog.slug}' created by {author.email}")
    return blog

async def update_blog(db: AsyncSession, blog_id: UUID, data: schemas.BlogUpdate) -> Tuple[models.Blog, Optional[str]]:
    """
    Returns the updated blog and the cover image URL it replaced, if any.
    """
    blog = await get_blog(db, blog_id)
    changes = data.model_dump(exclude_unset=True)

    if "slug" in changes and changes["slug"]:
        slug = catalog_service.slugify(changes["slug"])
        await _ensure_slug_free(db, slug, exclude_id=blog.id)
        changes["slug"] = slug
    if "category_id" in changes:
        await catalog_service.ensure_category(db, changes["category_id"])

    access_type = changes.get("access_type") or blog.access_type
    price = changes["price"] if "price" in changes else blog.price
    changes["price"] = catalog_service.validate_pricing(access_type, price)

    tag_names = changes.pop("tags", None)
    old_cover = None
    if "cover_image" in changes and changes["cover_image"] != blog.cover_image:
        old_cover = blog.cover_image

    if changes.get("published") and not blog.published_at:
        blog.published_at = datetime.now(timezone.utc)

    for field, value in changes.items():
        if value is None and field in ("title", "slug", "content", "access_type", "published", "featured", "keywords"):
            continue
        setattr(blog, field, value)

    if tag_names is not None:
        blog.tags = await catalog_service.resolve_tags(db, tag_names)

    await db.commit()
    await db.refresh(blog)
    return blog, old_cover

async def delete_blog(db: AsyncSession, blog_id: UUID) -> Optional[str]:
    """
    Deletes the blog and returns its cover image URL for cleanup.
    """
    blog = await get_blog(db, blog_id)
    cover = blog.cover_image

    from app.modules.engagement.models import Comment, Bookmark
    for model in (Comment, Bookmark, models.BlogPurchase):
        await db.execute(delete(model).where(model.blog_id == blog.id))
    blog.tags = []
    await db.delete(blog)
    await db.commit()
    logger.info(f"Blog '{blog.slug}' deleted")
    return cover
