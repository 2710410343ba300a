"""应用设置模型"""
from sqlalchemy import Column, String, Text, DateTime
from datetime import datetime

from ..database import Base


class AppSetting(Base):
    """应用级键值设置表"""
    __tablename__ = "app_settings"

    key = Column(String(64), primary_key=True)
    value = Column(Text, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
