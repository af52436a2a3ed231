from sqlalchemy import Column, Integer, Date, Text, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from elitetime.db.base import BaseModel
from elitetime.models.shared.enums import AbsenceType, AbsenceStatus

class Absence(BaseModel):
    __tablename__ = "absences"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(SQLEnum(AbsenceType), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    reason = Column(Text, nullable=True)
    status = Column(SQLEnum(AbsenceStatus), nullable=False, default=AbsenceStatus.PENDING)
    comment = Column(Text, nullable=True)
    validated_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    user = relationship("User", foreign_keys=[user_id])

    def __repr__(self):
        return f"<Absence user_id={self.user_id} {self.start_date}..{self.end_date} {self.status}>"
