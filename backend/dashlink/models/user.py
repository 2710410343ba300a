"""用户与用户组模型"""
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Table
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid

from ..database import Base


# 用户 <-> 用户组 关联表
user_groups = Table(
    "user_groups",
    Base.metadata,
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("group_id", String(64), ForeignKey("groups.id", ondelete="CASCADE"), primary_key=True),
)


class User(Base):
    """用户表"""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    username = Column(String(50), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True)
    is_admin = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # 关系（异步会话下必须预加载）
    groups = relationship("Group", secondary=user_groups, back_populates="members", lazy="selectin")
    links = relationship("Link", back_populates="owner", cascade="all, delete-orphan", passive_deletes=True)

    @property
    def group_ids(self) -> list[str]:
        return [group.id for group in self.groups]


class Group(Base):
    """用户组表"""
    __tablename__ = "groups"

    id = Column(String(64), primary_key=True)
    display_name = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    members = relationship("User", secondary=user_groups, back_populates="groups")
