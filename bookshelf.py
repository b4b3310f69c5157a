"""
Bookshelf service layer.

Every function takes an open SQLAlchemy session and returns plain records
(dataclasses) rather than ORM rows, so the web layer only ever serializes
validated values. Functions that write commit before returning; callers roll
back on ``SQLAlchemyError``.
"""
import logging
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import joinedload

from db.models import Book, Profile, User, UserBook
from rating import denormalize_rating, parse_rating, star_bar, stored_to_stars

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 7
BORROW_SCAN_LIMIT = 200
BORROW_MAX_BOOKS = 25

# Marks a field that an update leaves as it is
UNCHANGED = object()


class BookshelfError(ValueError):
    """A bookshelf request was rejected; the message is shown to the user."""


class NotFound(BookshelfError):
    pass


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def format_user_heading(user_id) -> str:
    user_id = str(user_id)
    if len(user_id) <= 12:
        return user_id
    return f"{user_id[:8]}...{user_id[-4:]}"


@dataclass
class BookRecord:
    id: int
    title: str
    author: Optional[str] = None
    genre: Optional[str] = None
    year: Optional[int] = None
    image_url: Optional[str] = None

    @classmethod
    def from_row(cls, book: Book) -> "BookRecord":
        return cls(
            id=book.id,
            title=book.title or "",
            author=book.author or "",
            genre=book.genre,
            year=book.year,
            image_url=book.image_url,
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ShelfEntry:
    id: int
    book_id: int
    created_at: Optional[datetime]
    rating: Optional[float]
    owned: bool
    read_at: Optional[datetime]
    book: Optional[BookRecord]

    @classmethod
    def from_row(cls, row: UserBook) -> "ShelfEntry":
        return cls(
            id=row.id,
            book_id=row.book_id,
            created_at=row.created_at,
            rating=stored_to_stars(row.rating),
            owned=bool(row.owned),
            read_at=row.read_at,
            book=BookRecord.from_row(row.book) if row.book else None,
        )

    @property
    def has_read(self) -> bool:
        return self.read_at is not None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "book_id": self.book_id,
            "created_at": _isoformat(self.created_at),
            "rating": self.rating,
            "stars": star_bar(self.rating) if self.rating is not None else None,
            "owned": self.owned,
            "read": self.has_read,
            "read_at": _isoformat(self.read_at),
            "book": self.book.to_dict() if self.book else None,
        }


@dataclass
class BorrowEntry:
    book: BookRecord
    owner_count: int
    last_added: Optional[datetime]

    def to_dict(self) -> dict:
        return {
            "book": self.book.to_dict(),
            "owner_count": self.owner_count,
            "last_added": _isoformat(self.last_added),
        }


@dataclass
class Owner:
    user_id: int
    display_name: str


@dataclass
class BookDetail:
    book: BookRecord
    owners: List[Owner] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "book": self.book.to_dict(),
            "owners": [asdict(owner) for owner in self.owners],
        }


@dataclass
class ProfileRecord:
    id: int
    fullname: Optional[str]

    def to_dict(self) -> dict:
        return asdict(self)


# --------------------
# Reading
# --------------------
def list_shelf(db, user_id: int) -> List[ShelfEntry]:
    """Return a reader's shelf, most recently added first."""
    rows = (
        db.query(UserBook)
        .options(joinedload(UserBook.book))
        .filter(UserBook.user_id == user_id)
        .order_by(UserBook.created_at.desc(), UserBook.id.desc())
        .all()
    )
    return [ShelfEntry.from_row(row) for row in rows]


def search_books(db, term: str, limit: int = SEARCH_LIMIT) -> List[BookRecord]:
    """Find catalogue books whose title contains ``term``, ignoring case."""
    term = (term or "").strip()
    if not term:
        return []
    books = (
        db.query(Book)
        .filter(Book.title.ilike(f"%{term}%"))
        .order_by(Book.title.asc())
        .limit(limit)
        .all()
    )
    return [BookRecord.from_row(book) for book in books]


def borrow_listing(db, scan_limit: int = BORROW_SCAN_LIMIT, max_books: int = BORROW_MAX_BOOKS) -> List[BorrowEntry]:
    """
    Books recently added by any reader, grouped by book.

    Scans the latest ``scan_limit`` shelf rows. Each book keeps the time it was
    most recently added and the number of distinct readers who have it. The
    scan stops as soon as ``max_books`` books have been collected.
    """
    rows = (
        db.query(UserBook)
        .options(joinedload(UserBook.book))
        .order_by(UserBook.created_at.desc(), UserBook.id.desc())
        .limit(scan_limit)
        .all()
    )

    grouped = {}
    for row in rows:
        if not row.book_id or row.book is None:
            continue
        existing = grouped.get(row.book_id)
        if existing:
            existing["owners"].add(row.user_id)
        else:
            record = BookRecord.from_row(row.book)
            record.title = record.title or "Untitled"
            grouped[row.book_id] = {
                "book": record,
                "owners": {row.user_id},
                "last_added": row.created_at,
            }
        if len(grouped) >= max_books:
            break

    return [
        BorrowEntry(book=entry["book"], owner_count=len(entry["owners"]), last_added=entry["last_added"])
        for entry in grouped.values()
    ]


def book_detail(db, book_id: int) -> BookDetail:
    """A catalogue book and every reader who has it on their shelf."""
    book = db.get(Book, book_id)
    if book is None:
        raise NotFound("No details available for this book.")

    rows = (
        db.query(UserBook)
        .filter(UserBook.book_id == book_id)
        .order_by(UserBook.created_at.desc(), UserBook.id.desc())
        .all()
    )
    owner_ids = []
    for row in rows:
        if row.user_id not in owner_ids:
            owner_ids.append(row.user_id)

    names = {}
    if owner_ids:
        profiles = db.query(Profile).filter(Profile.id.in_(owner_ids)).all()
        names = {profile.id: profile.fullname for profile in profiles}

    owners = [
        Owner(user_id=owner_id, display_name=names.get(owner_id) or format_user_heading(owner_id))
        for owner_id in owner_ids
    ]
    return BookDetail(book=BookRecord.from_row(book), owners=owners)


# --------------------
# Writing
# --------------------
def _parse_year(raw) -> Optional[int]:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise BookshelfError("Year must be a whole number")


def _clean(value) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def add_to_shelf(db, user_id: int, title: str = None, book_id: int = None, author: str = None,
                 genre: str = None, year=None, image_url: str = None, rating=None,
                 owned: bool = False, read: bool = False) -> ShelfEntry:
    """
    Put a book on a reader's shelf.

    Either ``book_id`` names an existing catalogue book, or ``title`` and
    ``author`` describe a new one that is created first.
    """
    title = _clean(title)
    author = _clean(author)

    if book_id is None and not title:
        raise BookshelfError("Enter a book title")
    if book_id is None and not author:
        raise BookshelfError("Provide an author for new books")
    stored_rating = denormalize_rating(parse_rating(rating))

    if book_id is not None:
        try:
            book_id = int(book_id)
        except (TypeError, ValueError):
            raise NotFound("Book not found")
        book = db.get(Book, book_id)
        if book is None:
            raise NotFound("Book not found")
    else:
        book = Book(
            title=title,
            author=author,
            genre=_clean(genre),
            year=_parse_year(year),
            image_url=_clean(image_url),
        )
        db.add(book)
        db.flush()
        logger.info("Created book %s (%r by %r)", book.id, book.title, book.author)

    entry = UserBook(
        user_id=user_id,
        book_id=book.id,
        rating=stored_rating,
        owned=bool(owned),
        read_at=datetime.utcnow() if read else None,
    )
    db.add(entry)
    db.commit()
    logger.info("User %s added book %s to their shelf", user_id, book.id)
    return ShelfEntry.from_row(entry)


def _owned_entry(db, user_id: int, entry_id: int) -> UserBook:
    entry = (
        db.query(UserBook)
        .filter(UserBook.id == entry_id, UserBook.user_id == user_id)
        .first()
    )
    if entry is None:
        raise NotFound("Shelf entry not found")
    return entry


def update_entry(db, user_id: int, entry_id: int, rating=UNCHANGED, owned=UNCHANGED, read=UNCHANGED) -> ShelfEntry:
    """
    Change the rating, ownership or read status of one of the reader's entries.

    Fields left as ``UNCHANGED`` keep their stored value; ``rating=None``
    clears the rating.
    """
    if rating is not UNCHANGED:
        stored_rating = denormalize_rating(parse_rating(rating))
    entry = _owned_entry(db, user_id, entry_id)

    if rating is not UNCHANGED:
        entry.rating = stored_rating
    if owned is not UNCHANGED:
        entry.owned = bool(owned)
    if read is not UNCHANGED:
        entry.read_at = (entry.read_at or datetime.utcnow()) if read else None
    db.commit()
    logger.info("User %s updated shelf entry %s", user_id, entry_id)
    return ShelfEntry.from_row(entry)


def remove_entry(db, user_id: int, entry_id: int):
    entry = _owned_entry(db, user_id, entry_id)
    db.delete(entry)
    db.commit()
    logger.info("User %s removed shelf entry %s", user_id, entry_id)


# --------------------
# Profiles
# --------------------
def get_or_create_profile(db, user: User) -> ProfileRecord:
    """Return the user's profile, creating it from their email on first use."""
    profile = db.get(Profile, user.id)
    if profile is None:
        profile = Profile(id=user.id, fullname=(user.email or "").strip() or None)
        db.add(profile)
        db.commit()
        logger.info("Created profile for user %s", user.id)
    return ProfileRecord(id=profile.id, fullname=profile.fullname)


def update_profile(db, user_id: int, fullname: str) -> ProfileRecord:
    """Save the display name; a blank name leaves the stored one unchanged."""
    trimmed = (fullname or "").strip()
    profile = db.get(Profile, user_id)
    if profile is None:
        profile = Profile(id=user_id)
        db.add(profile)
    if trimmed:
        profile.fullname = trimmed
    db.commit()
    return ProfileRecord(id=profile.id, fullname=profile.fullname)
