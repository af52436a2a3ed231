from sqlalchemy import Column, Integer, String, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from elitetime.db.base import BaseModel
from elitetime.models.shared.enums import UserRole, UserStatus

class User(BaseModel):
    __tablename__ = "users"

    username = Column(String(50), unique=True, index=True, nullable=False)
    email = Column(String(255), index=True, nullable=True)
    firstname = Column(String(100), nullable=True)
    lastname = Column(String(100), nullable=True)
    role = Column(SQLEnum(UserRole), nullable=False, default=UserRole.EMPLOYEE)
    status = Column(SQLEnum(UserStatus), nullable=False, default=UserStatus.ACTIVE)
    # Department and position are referenced by name
    department = Column(String(100), nullable=True, index=True)
    position = Column(String(100), nullable=True)
    avatar = Column(String(500), nullable=True)
    team_lead_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    # Relationships
    team_lead = relationship("User", remote_side="User.id", foreign_keys=[team_lead_id])
    permissions = relationship(
        "UserPermission",
        back_populates="user",
        foreign_keys="UserPermission.user_id",
        cascade="all, delete-orphan",
    )
    sessions = relationship("UserSession", back_populates="user", cascade="all, delete-orphan")

    @property
    def full_name(self) -> str:
        name = f"{self.firstname or ''} {self.lastname or ''}".strip()
        return name or self.username

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def __repr__(self):
        return f"<User {self.username}>"
