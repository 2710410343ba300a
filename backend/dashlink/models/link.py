"""链接模型"""
from sqlalchemy import Column, String, DateTime, Integer, SmallInteger, Text, ForeignKey, Index
from sqlalchemy.orm import relationship
from datetime import datetime
import json

from ..database import Base


class Link(Base):
    """链接表

    user_id 为空表示管理员维护的全局链接，非空表示该用户的私有链接。
    position 在各自分区内从 0 连续编号。
    """
    __tablename__ = "links"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False, default="")
    url = Column(String(2048), nullable=False)
    description = Column(Text, nullable=True)
    icon_path = Column(String(512), nullable=True)
    icon_mime_type = Column(String(64), nullable=True)
    target = Column(String(10), nullable=False, default="_blank")
    groups_json = Column(Text, nullable=True)
    position = Column(Integer, nullable=False, default=0, index=True)
    enabled = Column(SmallInteger, nullable=False, default=1, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)

    # 关系
    owner = relationship("User", back_populates="links")

    __table_args__ = (
        Index("idx_user_position", "user_id", "position"),
    )

    @property
    def groups(self) -> list[str]:
        if not self.groups_json:
            return []
        try:
            groups = json.loads(self.groups_json)
        except json.JSONDecodeError:
            return []
        return groups if isinstance(groups, list) else []

    @groups.setter
    def groups(self, value: list[str]) -> None:
        self.groups_json = json.dumps(list(value))

    def __repr__(self) -> str:
        return f"<Link id={self.id} owner={self.user_id!r} position={self.position}>"
