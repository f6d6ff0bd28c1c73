import uuid
from sqlalchemy import Column, String, Boolean, Float, DateTime, func, Enum, ForeignKey, Text, JSON, Uuid, UniqueConstraint
from sqlalchemy.orm import relationship
from app.core.db import Base
from app.modules.catalog.models import AccessType, blog_tags

class Blog(Base):
    __tablename__ = "blogs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String, nullable=False)
    slug = Column(String, unique=True, index=True, nullable=False)
    content = Column(Text, nullable=False)
    excerpt = Column(Text, nullable=True)
    cover_image = Column(String, nullable=True)

    access_type = Column(Enum(AccessType), default=AccessType.FREE, nullable=False)
    price = Column(Float, nullable=True) # Required when PAID

    published = Column(Boolean, default=False, nullable=False)
    featured = Column(Boolean, default=False, nullable=False)

    # SEO
    meta_title = Column(String, nullable=True)
    meta_description = Column(String, nullable=True)
    keywords = Column(JSON, default=list, nullable=False)

    category_id = Column(Uuid, ForeignKey("categories.id"), nullable=True)
    author_id = Column(Uuid, ForeignKey("users.id"), nullable=True)

    published_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    category = relationship("Category", lazy="selectin")
    author = relationship("User", lazy="selectin")
    tags = relationship("Tag", secondary=blog_tags, lazy="selectin")

class BlogPurchase(Base):
    __tablename__ = "blog_purchases"
    __table_args__ = (UniqueConstraint("user_id", "blog_id", name="uq_blog_purchase_user_blog"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    blog_id = Column(Uuid, ForeignKey("blogs.id", ondelete="CASCADE"), nullable=False)
    payment_id = Column(Uuid, ForeignKey("payments.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    blog = relationship("Blog", lazy="selectin")
