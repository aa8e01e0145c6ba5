import logging

from sqlalchemy.exc import IntegrityError

from app import db
from app.errors import NotFoundError, ValidationError, integrity_messages
from app.models import Book, BookCopy, Reservation
from app.utils import parse_int

logger = logging.getLogger(__name__)

BOOK_FIELDS = ("title", "author", "publisher", "edition", "year", "isbn", "genre")


def _commit(message: str) -> None:
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ValidationError(integrity_messages(exc), message=message) from exc


class BookService:
    """Librarian-managed catalog of books."""

    @staticmethod
    def list(filters: dict, page: int = 1, per_page: int = 20):
        query = db.select(Book)
        for field in Book.FILTER_FIELDS:
            value = filters.get(field)
            if value:
                query = query.where(getattr(Book, field).ilike(f"%{value}%"))
        query = query.order_by(Book.title, Book.id)
        return db.paginate(query, page=page, per_page=per_page, error_out=False)

    @staticmethod
    def get(book_id) -> Book:
        book = db.session.get(Book, book_id) if book_id is not None else None
        if book is None:
            raise NotFoundError("Book not found", message="The requested book does not exist")
        return book

    @staticmethod
    def _assign(book: Book, attrs: dict) -> None:
        for field in BOOK_FIELDS:
            if field not in attrs:
                continue
            value = attrs[field]
            if field == "year" and value not in (None, ""):
                # Keep unparseable input so validation can report it
                value = parse_int(value) if parse_int(value) is not None else value
            elif isinstance(value, str):
                value = value.strip()
            setattr(book, field, value)

    @staticmethod
    def create(attrs: dict) -> Book:
        book = Book()
        BookService._assign(book, attrs)
        if not book.is_valid():
            raise ValidationError(book.errors, message="Failed to create book")

        db.session.add(book)
        _commit("Failed to create book")
        logger.info("Created book %s (%s)", book.id, book.title)
        return book

    @staticmethod
    def update(book: Book, attrs: dict) -> Book:
        BookService._assign(book, attrs)
        if not book.is_valid():
            db.session.rollback()
            raise ValidationError(book.errors, message="Failed to update book")

        _commit("Failed to update book")
        return book

    @staticmethod
    def delete(book: Book) -> None:
        active = (
            Reservation.active()
            .join(BookCopy, Reservation.book_copy_id == BookCopy.id)
            .filter(BookCopy.book_id == book.id)
        )
        if db.session.query(active.exists()).scalar():
            raise ValidationError(
                "Cannot delete book with active reservations", message="Failed to delete book"
            )

        db.session.delete(book)
        db.session.commit()
        logger.info("Deleted book %s", book.id)


class BookCopyService:
    """Physical copies of a book."""

    @staticmethod
    def list(book: Book, filters: dict, page: int = 1, per_page: int = 20):
        query = db.select(BookCopy).where(BookCopy.book_id == book.id)
        serial = filters.get("book_serial_number")
        if serial:
            query = query.where(BookCopy.book_serial_number.ilike(f"%{serial}%"))
        if filters.get("available") in ("true", "false"):
            query = query.where(BookCopy.available.is_(filters["available"] == "true"))
        query = query.order_by(BookCopy.book_serial_number)
        return db.paginate(query, page=page, per_page=per_page, error_out=False)

    @staticmethod
    def get(copy_id, book_id=None) -> BookCopy:
        """Look up a copy; with *book_id*, a copy of another book is not found."""
        book_copy = db.session.get(BookCopy, copy_id) if copy_id is not None else None
        if book_copy is None or (book_id is not None and book_copy.book_id != book_id):
            raise NotFoundError("Book copy not found", message="The requested book copy does not exist")
        return book_copy

    @staticmethod
    def create(book: Book, attrs: dict) -> BookCopy:
        serial = attrs.get("book_serial_number")
        # New copies start on the shelf; only reservations take them out.
        book_copy = BookCopy(
            book_id=book.id,
            book_serial_number=serial.strip() if isinstance(serial, str) else serial,
            available=True,
        )
        if not book_copy.is_valid():
            raise ValidationError(book_copy.errors, message="Failed to create book copy")

        db.session.add(book_copy)
        _commit("Failed to create book copy")
        logger.info("Created copy %s of book %s", book_copy.book_serial_number, book.id)
        return book_copy

    @staticmethod
    def update(book_copy: BookCopy, attrs: dict) -> BookCopy:
        """Update descriptive fields; availability only changes through reservations."""
        if "book_serial_number" in attrs:
            serial = attrs["book_serial_number"]
            book_copy.book_serial_number = serial.strip() if isinstance(serial, str) else serial
        if not book_copy.is_valid():
            db.session.rollback()
            raise ValidationError(book_copy.errors, message="Failed to update book copy")

        _commit("Failed to update book copy")
        return book_copy

    @staticmethod
    def mark_unavailable(book_copy: BookCopy) -> BookCopy:
        """Take a copy out of circulation by hand."""
        if not book_copy.mark_unavailable():
            raise ValidationError(book_copy.errors, message="Failed to update book copy")
        db.session.commit()
        return book_copy

    @staticmethod
    def delete(book_copy: BookCopy) -> None:
        if book_copy.has_active_reservations():
            raise ValidationError(
                "Cannot delete book copy with active reservations",
                message="Failed to delete book copy",
            )

        db.session.delete(book_copy)
        db.session.commit()
        logger.info("Deleted copy %s", book_copy.book_serial_number)
