"""Comment model with sentiment label and read state."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database import Base


class Comment(Base):
    """Comment left under a monitored post, labelled by mood."""

    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    post_id = Column(Integer, ForeignKey("posts.id"), nullable=True, index=True)
    text = Column(Text, nullable=True)
    label = Column(String, nullable=True, index=True)
    likes = Column(Integer, nullable=False, default=0)
    tip_social = Column(String, nullable=True, index=True)
    category_id = Column(Integer, nullable=True, index=True)
    created = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    is_read = Column(Boolean, nullable=False, default=False, index=True)

    post = relationship("Post", back_populates="comments")
