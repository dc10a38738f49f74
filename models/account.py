"""Monitored social account model."""

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database import Base


class Account(Base):
    """Account scraped from an external platform."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String, nullable=False, index=True)
    full_name = Column(String, nullable=True)
    tip_social = Column(String, nullable=True, index=True)
    profile_pic_url = Column(String, nullable=True)
    followers = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    posts = relationship("Post", back_populates="account", cascade="all, delete-orphan")
