from sqlalchemy import Column, Integer, String, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from elitetime.db.base import BaseModel

class Page(BaseModel):
    __tablename__ = "pages"

    code = Column(String(100), unique=True, nullable=False, index=True)
    path = Column(String(255), nullable=False)
    label = Column(String(255), nullable=False)
    nav_group = Column(String(50), nullable=True)
    allowed_roles = Column(JSON, nullable=False, default=list)

    page_permissions = relationship(
        "PagePermission", back_populates="page", cascade="all, delete-orphan", lazy="selectin"
    )

    @property
    def required_permissions(self):
        return [pp.permission.name for pp in self.page_permissions if pp.permission]

    def __repr__(self):
        return f"<Page {self.code} {self.path}>"


class PagePermission(BaseModel):
    __tablename__ = "page_permissions"
    __table_args__ = (UniqueConstraint("page_id", "permission_id", name="uq_page_permission"),)

    page_id = Column(Integer, ForeignKey("pages.id", ondelete="CASCADE"), nullable=False)
    permission_id = Column(Integer, ForeignKey("permissions.id", ondelete="CASCADE"), nullable=False)

    page = relationship("Page", back_populates="page_permissions")
    permission = relationship("Permission", back_populates="page_permissions", lazy="joined")
