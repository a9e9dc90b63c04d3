from models.base_model import Base, BaseModel
from sqlalchemy import Column, String, Text
from sqlalchemy.orm import relationship


class User(BaseModel, Base):
    __tablename__ = "users"
    user_name = Column(String(64), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    full_name = Column(String(255), nullable=False, index=True)
    avatar = Column(String(1024), nullable=False)
    cover_image = Column(String(1024), nullable=True)
    password_hash = Column(String(255), nullable=False)
    # The single live refresh token; NULL when logged out
    refresh_token = Column(Text, nullable=True)

    videos = relationship("Video", back_populates="owner", passive_deletes=True)
    watch_history = relationship(
        "WatchHistoryEntry",
        order_by="WatchHistoryEntry.id",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<User user_name={self.user_name}>"
