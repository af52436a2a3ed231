from sqlalchemy import Column, Integer, Date, Time, ForeignKey
from sqlalchemy.orm import relationship
from elitetime.db.base import BaseModel

class Break(BaseModel):
    __tablename__ = "breaks"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=True)
    duration = Column(Integer, nullable=False, default=0)  # minutes

    user = relationship("User")

    def __repr__(self):
        return f"<Break user_id={self.user_id} date={self.date}>"
