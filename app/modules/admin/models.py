import uuid
from sqlalchemy import Column, String, DateTime, Text, Uuid
from sqlalchemy.sql import func
import enum

from app.core.db import Base

class SettingType(str, enum.Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    JSON = "json"

class Setting(Base):
    __tablename__ = "settings"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    key = Column(String, unique=True, index=True, nullable=False)
    value = Column(Text, nullable=False) # Store as string, decode by type
    type = Column(String, default=SettingType.STRING.value, nullable=False)
    category = Column(String, default="general", nullable=False)
    description = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), server_default=func.now())
