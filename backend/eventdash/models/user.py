"""User ORM model."""
from sqlalchemy import Column, Integer, String
from sqlalchemy.sql import func
from eventdash.database import Base
from eventdash.timeutil import UTCDateTime


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True)
    name = Column(String(100), nullable=False)
    password_hash = Column(String(255), nullable=False, default="")  # issued and checked by the identity provider
    created_at = Column(UTCDateTime, server_default=func.now())
