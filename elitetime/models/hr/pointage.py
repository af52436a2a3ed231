from sqlalchemy import Column, Integer, Date, Time, Boolean, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from elitetime.db.base import BaseModel
from elitetime.models.shared.enums import PointageStatus

class Pointage(BaseModel):
    """One clock-in / clock-out record. Times are local wall-clock times."""
    __tablename__ = "pointages"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    entry_time = Column(Time, nullable=True)
    exit_time = Column(Time, nullable=True)
    duration = Column(Integer, nullable=False, default=0)  # minutes
    status = Column(SQLEnum(PointageStatus), nullable=False, default=PointageStatus.NORMAL)
    is_active = Column(Boolean, nullable=False, default=False)

    user = relationship("User")

    def __repr__(self):
        return f"<Pointage user_id={self.user_id} date={self.date} active={self.is_active}>"
