"""Post model for scraped social media posts."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database import Base


class Post(Base):
    """Post published by a monitored account."""

    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    post_url = Column(String, nullable=True)
    image_url = Column(String, nullable=True)
    caption = Column(Text, nullable=True)
    likes = Column(Integer, nullable=True)
    comments_count = Column(Integer, nullable=True)
    created = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    account = relationship("Account", back_populates="posts")
    comments = relationship("Comment", back_populates="post", cascade="all, delete-orphan")
