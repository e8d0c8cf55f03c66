"""SQLAlchemy models for the movie catalog."""

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()

SOURCE_LOCAL = "local"
SOURCE_TMDB = "tmdb"

STATUS_ACTIVE = "active"
STATUS_HIDDEN = "hidden"


class Movie(Base):
    __tablename__ = "movies"
    __table_args__ = (UniqueConstraint("tmdb_id", name="uq_movies_tmdb_id"),)

    id = Column(Integer, primary_key=True, index=True)
    tmdb_id = Column(Integer, nullable=True, index=True)
    title = Column(String(255), nullable=False)
    original_title = Column(String(255), nullable=True)
    release_date = Column(Date, nullable=True)
    year = Column(Integer, nullable=True)
    runtime_minutes = Column(Integer, nullable=True)
    language = Column(String(20), nullable=True)
    country = Column(String(100), nullable=True)
    description = Column(Text, nullable=True)
    poster_url = Column(String(512), nullable=True)
    source = Column(String(20), nullable=False, server_default=SOURCE_LOCAL)
    last_fetched_at = Column(DateTime(timezone=True), nullable=True)
    status = Column(String(20), nullable=False, server_default=STATUS_ACTIVE)
    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        server_onupdate=func.now(),
    )


class Genre(Base):
    __tablename__ = "genres"
    __table_args__ = (UniqueConstraint("name", name="uq_genres_name"),)

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)


class MovieGenre(Base):
    __tablename__ = "movie_genres"

    movie_id = Column(
        Integer, ForeignKey("movies.id", ondelete="CASCADE"), primary_key=True
    )
    genre_id = Column(
        Integer, ForeignKey("genres.id", ondelete="CASCADE"), primary_key=True, index=True
    )


class User(Base):
    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("username", name="uq_users_username"),)

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), nullable=False)
    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class Rating(Base):
    __tablename__ = "ratings"
    __table_args__ = (UniqueConstraint("user_id", "movie_id", name="uq_ratings_user_movie"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    movie_id = Column(Integer, ForeignKey("movies.id"), nullable=False, index=True)
    score = Column(Integer, nullable=False)
    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class Review(Base):
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    movie_id = Column(Integer, ForeignKey("movies.id"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, server_default="visible")
    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class WatchHistory(Base):
    __tablename__ = "watch_history"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    movie_id = Column(Integer, ForeignKey("movies.id"), nullable=False, index=True)
    watched_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
