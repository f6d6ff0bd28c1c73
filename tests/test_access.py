from datetime import datetime, timedelta, timezone

from app.modules.access import service as access_service
from app.modules.auth.models import UserRole
from app.modules.blogs.models import Blog, BlogPurchase
from app.modules.catalog.models import AccessType
from app.modules.resources.models import ResourcePurchase
from app.modules.subscriptions.models import Subscription, SubscriptionStatus

from conftest import make_user, make_blog, make_resource, make_plan


async def _subscribe(db, user, status=SubscriptionStatus.ACTIVE, days=30):
    plan = await make_plan(db)
    now = datetime.now(timezone.utc)
    subscription = Subscription(
        user_id=user.id,
        plan_id=plan.id,
        status=status,
        price=plan.price,
        start_date=now - timedelta(days=1),
        end_date=now + timedelta(days=days),
    )
    db.add(subscription)
    await db.commit()
    return subscription


async def test_free_content_is_open_to_everyone(db, user):
    blog = await make_blog(db, access_type=AccessType.FREE)

    assert await access_service.can_access(db, None, blog)
    assert await access_service.can_access(db, user, blog)


async def test_anonymous_viewer_cannot_open_paid_or_subscription_content(db):
    paid = await make_blog(db, slug="paid", access_type=AccessType.PAID, price=99)
    premium = await make_blog(db, slug="premium", access_type=AccessType.SUBSCRIPTION)

    assert not await access_service.can_access(db, None, paid)
    assert not await access_service.can_access(db, None, premium)


async def test_paid_blog_requires_a_purchase(db, user):
    blog = await make_blog(db, access_type=AccessType.PAID, price=99)
    assert not await access_service.can_access(db, user, blog)

    db.add(BlogPurchase(user_id=user.id, blog_id=blog.id))
    await db.commit()

    assert await access_service.can_access(db, user, blog)


async def test_blog_purchase_does_not_unlock_resource_with_same_shape(db, user):
    blog = await make_blog(db, access_type=AccessType.PAID, price=99)
    resource = await make_resource(db, access_type=AccessType.PAID, price=49)
    db.add(BlogPurchase(user_id=user.id, blog_id=blog.id))
    await db.commit()

    assert not await access_service.can_access(db, user, resource)

    db.add(ResourcePurchase(user_id=user.id, resource_id=resource.id))
    await db.commit()
    assert await access_service.can_access(db, user, resource)


async def test_admin_sees_everything(db, admin):
    paid = await make_blog(db, slug="paid", access_type=AccessType.PAID, price=99)
    premium = await make_resource(db, access_type=AccessType.SUBSCRIPTION)

    assert await access_service.can_access(db, admin, paid)
    assert await access_service.can_access(db, admin, premium)


async def test_active_subscription_unlocks_subscription_content(db, user):
    blog = await make_blog(db, access_type=AccessType.SUBSCRIPTION)
    assert not await access_service.can_access(db, user, blog)

    await _subscribe(db, user)
    assert await access_service.can_access(db, user, blog)


async def test_subscription_does_not_unlock_paid_content(db, user):
    blog = await make_blog(db, access_type=AccessType.PAID, price=99)
    await _subscribe(db, user)

    assert not await access_service.can_access(db, user, blog)


async def test_expired_or_pending_subscription_grants_nothing(db, user):
    blog = await make_blog(db, access_type=AccessType.SUBSCRIPTION)

    await _subscribe(db, user, days=-1)
    assert not await access_service.can_access(db, user, blog)

    other = await make_user(db, email="pending@example.com")
    await _subscribe(db, other, status=SubscriptionStatus.PENDING)
    assert not await access_service.can_access(db, other, blog)


async def test_banned_user_is_treated_as_anonymous(db):
    banned = await make_user(db, email="banned@example.com", banned=True)
    blog = await make_blog(db, access_type=AccessType.PAID, price=10)
    db.add(BlogPurchase(user_id=banned.id, blog_id=blog.id))
    await db.commit()

    assert not await access_service.can_access(db, banned, blog)

    banned_admin = await make_user(db, email="ex-admin@example.com", role=UserRole.ADMIN, banned=True)
    assert not await access_service.can_access(db, banned_admin, blog)


async def test_access_map_matches_single_item_decisions(db, user):
    free = await make_resource(db, slug="free", access_type=AccessType.FREE)
    bought = await make_resource(db, slug="bought", access_type=AccessType.PAID, price=20)
    not_bought = await make_resource(db, slug="not-bought", access_type=AccessType.PAID, price=20)
    premium = await make_resource(db, slug="premium", access_type=AccessType.SUBSCRIPTION)
    db.add(ResourcePurchase(user_id=user.id, resource_id=bought.id))
    await db.commit()

    items = [free, bought, not_bought, premium]
    decisions = await access_service.access_map(db, user, items)

    assert decisions == {
        free.id: True,
        bought.id: True,
        not_bought.id: False,
        premium.id: False,
    }
    for item in items:
        assert decisions[item.id] == await access_service.can_access(db, user, item)

    anonymous = await access_service.access_map(db, None, items)
    assert anonymous == {free.id: True, bought.id: False, not_bought.id: False, premium.id: False}


def test_blog_preview_prefers_excerpt():
    assert access_service.blog_preview(Blog(content="x" * 1000, excerpt="Short intro")) == "Short intro"
    assert access_service.blog_preview(Blog(content="x" * 1000, excerpt=None)) == "x" * 500


def test_resource_preview_is_truncated_with_ellipsis():
    from app.modules.resources.models import Resource

    short = Resource(description="tiny")
    long = Resource(description="y" * 300)

    assert access_service.resource_preview(short) == "tiny"
    assert access_service.resource_preview(long) == "y" * 200 + "..."
