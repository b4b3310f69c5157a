"""
Database models for players and their bookshelves.
"""
from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import declarative_base, relationship
from flask_login import UserMixin
from datetime import datetime

from auth import hash_password, verify_password

Base = declarative_base()


class User(UserMixin, Base):
    """Registered account, used by both the bookshelf and the Wordle stats."""
    __tablename__ = 'users'

    id = Column(Integer, primary_key=True)
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    wins = Column(Integer, default=0, nullable=False)
    losses = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    profile = relationship("Profile", back_populates="user", uselist=False, cascade="all, delete-orphan")
    shelf = relationship("UserBook", back_populates="user", cascade="all, delete-orphan")

    def set_password(self, password: str):
        self.password_hash = hash_password(password)

    def check_password(self, password: str) -> bool:
        return verify_password(self.password_hash, password)

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', wins={self.wins}, losses={self.losses})>"


class Profile(Base):
    """Public profile shown to other readers."""
    __tablename__ = 'profiles'

    id = Column(Integer, ForeignKey('users.id'), primary_key=True)
    fullname = Column(String(255), nullable=True)

    user = relationship("User", back_populates="profile")

    def __repr__(self):
        return f"<Profile(id={self.id}, fullname='{self.fullname}')>"


class Book(Base):
    """Catalogue entry shared by every reader who shelves the same book."""
    __tablename__ = 'books'

    id = Column(Integer, primary_key=True)
    title = Column(String(255), nullable=False)
    author = Column(String(255), nullable=True)
    genre = Column(String(100), nullable=True)
    year = Column(Integer, nullable=True)
    image_url = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    entries = relationship("UserBook", back_populates="book")

    def __repr__(self):
        return f"<Book(id={self.id}, title='{self.title}', author='{self.author}')>"


class UserBook(Base):
    """A book on a reader's shelf. Rating is stored on a 1..10 scale."""
    __tablename__ = 'user_books'

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False)
    book_id = Column(Integer, ForeignKey('books.id'), nullable=False)
    rating = Column(Integer, nullable=True)
    owned = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="shelf")
    book = relationship("Book", back_populates="entries")

    def __repr__(self):
        return f"<UserBook(id={self.id}, user_id={self.user_id}, book_id={self.book_id}, rating={self.rating})>"
