from sqlalchemy import Column, String, Text
from sqlalchemy.orm import relationship
from elitetime.db.base import BaseModel

class Department(BaseModel):
    __tablename__ = "departments"

    name = Column(String(100), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)

    positions = relationship("Position", back_populates="department", passive_deletes=True)

    def __repr__(self):
        return f"<Department {self.name}>"
