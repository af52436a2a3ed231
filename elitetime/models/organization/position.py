from sqlalchemy import Column, Integer, String, Text, ForeignKey
from sqlalchemy.orm import relationship
from elitetime.db.base import BaseModel

class Position(BaseModel):
    __tablename__ = "positions"

    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    department_id = Column(Integer, ForeignKey("departments.id", ondelete="CASCADE"), nullable=False, index=True)

    department = relationship("Department", back_populates="positions")

    def __repr__(self):
        return f"<Position {self.name}>"
