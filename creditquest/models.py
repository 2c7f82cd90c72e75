from sqlalchemy import Column, Integer, Text
from creditquest.database import Base


class Document(Base):
    """A whole JSON document, stored and replaced as one value."""

    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False, unique=True)
    payload = Column(Text, nullable=False)
    updated_at = Column(Text, server_default="(datetime('now'))")
