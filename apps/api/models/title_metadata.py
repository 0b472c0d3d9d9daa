"""Cached catalog metadata for titles."""

from sqlalchemy import Column, String, DateTime, Integer, Text

from database import Base


class TitleMetadata(Base):
    """Display fields captured from the catalog the last time a title was looked up."""

    __tablename__ = "title_metadata"

    title_id = Column(Integer, primary_key=True)
    title = Column(String, nullable=True)
    poster_path = Column(String, nullable=True)
    backdrop_path = Column(String, nullable=True)
    overview = Column(Text, nullable=True)
    imdb_id = Column(String, nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=True)
