"""
Entitlement resolution shared by the blog and resource routes.

A viewer gets full access when the item is FREE, when they are an admin,
when they bought a PAID item, or when they hold a live subscription for
SUBSCRIPTION items. Everyone else gets the preview.
"""
from datetime import datetime, timezone
from typing import Iterable, Optional, Dict, Set
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.auth.models import User, UserRole
from app.modules.catalog.models import AccessType
from app.modules.blogs.models import Blog, BlogPurchase
from app.modules.resources.models import Resource, ResourcePurchase
from app.modules.subscriptions.models import Subscription, SubscriptionStatus

BLOG_PREVIEW_LENGTH = 500
RESOURCE_PREVIEW_LENGTH = 200

def _purchase_model(item):
    if isinstance(item, Blog):
        return BlogPurchase, BlogPurchase.blog_id
    if isinstance(item, Resource):
        return ResourcePurchase, ResourcePurchase.resource_id
    raise TypeError(f"Unsupported content item: {type(item).__name__}")

def _viewer(user: Optional[User]) -> Optional[User]:
    # Banned accounts browse like anonymous visitors
    if user is None or user.banned:
        return None
    return user

async def has_purchased(db: AsyncSession, user_id: UUID, item) -> bool:
    model, item_column = _purchase_model(item)
    result = await db.execute(
        select(model.id).where(model.user_id == user_id, item_column == item.id)
    )
    return result.first() is not None

async def has_active_subscription(db: AsyncSession, user_id: UUID) -> bool:
    now = datetime.now(timezone.utc)
    result = await db.execute(
        select(Subscription.id).where(
            Subscription.user_id == user_id,
            Subscription.status == SubscriptionStatus.ACTIVE,
            Subscription.end_date >= now,
        )
    )
    return result.first() is not None

async def can_access(db: AsyncSession, user: Optional[User], item) -> bool:
    if item.access_type == AccessType.FREE:
        return True

    viewer = _viewer(user)
    if viewer is None:
        return False
    if viewer.role == UserRole.ADMIN:
        return True

    if item.access_type == AccessType.PAID:
        return await has_purchased(db, viewer.id, item)
    if item.access_type == AccessType.SUBSCRIPTION:
        return await has_active_subscription(db, viewer.id)
    return False

async def access_map(db: AsyncSession, user: Optional[User], items: Iterable) -> Dict[UUID, bool]:
    """
    Resolve access for a page of items with at most two queries.
    """
    items = list(items)
    viewer = _viewer(user)
    decisions: Dict[UUID, bool] = {}

    paid = [i for i in items if i.access_type == AccessType.PAID]
    needs_subscription = any(i.access_type == AccessType.SUBSCRIPTION for i in items)

    purchased: Set[UUID] = set()
    subscribed = False
    if viewer is not None and viewer.role != UserRole.ADMIN:
        if paid:
            model, item_column = _purchase_model(paid[0])
            result = await db.execute(
                select(item_column).where(
                    model.user_id == viewer.id,
                    item_column.in_([i.id for i in paid]),
                )
            )
            purchased = set(result.scalars().all())
        if needs_subscription:
            subscribed = await has_active_subscription(db, viewer.id)

    for item in items:
        if item.access_type == AccessType.FREE:
            decisions[item.id] = True
        elif viewer is None:
            decisions[item.id] = False
        elif viewer.role == UserRole.ADMIN:
            decisions[item.id] = True
        elif item.access_type == AccessType.PAID:
            decisions[item.id] = item.id in purchased
        else:
            decisions[item.id] = subscribed
    return decisions

def blog_preview(blog: Blog) -> str:
    if blog.excerpt:
        return blog.excerpt
    return (blog.content or "")[:BLOG_PREVIEW_LENGTH]

def resource_preview(resource: Resource) -> str:
    description = resource.description or ""
    if len(description) <= RESOURCE_PREVIEW_LENGTH:
        return description
    return description[:RESOURCE_PREVIEW_LENGTH] + "..."
