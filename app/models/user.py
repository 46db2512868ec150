from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship
from app.database import Base

class User(Base):
    """Application users (only the demo user is seeded; there is no auth)"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, nullable=False, unique=True)
    password = Column(String, nullable=False)

    analyses = relationship("Analysis", back_populates="user")

    def __repr__(self):
        return f"<User {self.id}: {self.username}>"
