from sqlalchemy import Column, DateTime, ForeignKey, Identity, Integer, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.database import Base


class Card(Base):
    __tablename__ = "cards"

    id = Column(Integer, Identity(always=True), primary_key=True)
    deck_id = Column(Integer, ForeignKey("decks.id", ondelete="CASCADE"), nullable=False, index=True)
    front = Column(Text, nullable=False)  # question or term
    back = Column(Text, nullable=False)  # answer or translation
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    deck = relationship("Deck", back_populates="cards")
