# backoffice/models/users.py

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.sql import func

from backoffice.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)

    phone = Column(String, nullable=False, default="")
    location = Column(String, nullable=False, default="")

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
