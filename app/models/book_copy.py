import enum

from app import db
from app.models.validation import Validatable


class CopyState(str, enum.Enum):
    """Lending state of a physical copy, derived from its availability flag."""
    AVAILABLE = "available"
    RESERVED = "reserved"


class BookCopy(Validatable, db.Model):
    """A single physical, lendable copy of a book."""

    __tablename__ = "book_copies"
    __table_args__ = (
        db.Index("ix_book_copies_book_available", "book_id", "available"),
    )

    id = db.Column(db.Integer, primary_key=True)
    book_id = db.Column(
        db.Integer, db.ForeignKey("books.id", ondelete="CASCADE"), nullable=False, index=True
    )
    book_serial_number = db.Column(db.String(100), unique=True, nullable=False, index=True)
    available = db.Column(db.Boolean, default=True, nullable=False, index=True)
    created_at = db.Column(db.DateTime, server_default=db.func.now())
    updated_at = db.Column(db.DateTime, server_default=db.func.now(), onupdate=db.func.now())

    # Relationships
    book = db.relationship("Book", back_populates="book_copies")
    reservations = db.relationship(
        "Reservation", back_populates="book_copy", cascade="all, delete-orphan"
    )

    @property
    def state(self) -> CopyState:
        return CopyState.AVAILABLE if self.available else CopyState.RESERVED

    def validate(self):
        self.validate_presence("book_serial_number")
        if self.book is None and self.book_id is None:
            self.add_error("book", "must exist")
        if self.book_serial_number:
            with db.session.no_autoflush:
                query = BookCopy.query.filter_by(book_serial_number=self.book_serial_number.strip())
                if self.id is not None:
                    query = query.filter(BookCopy.id != self.id)
                taken = db.session.query(query.exists()).scalar()
            if taken:
                self.add_error("book_serial_number", "has already been taken")

    def has_active_reservations(self) -> bool:
        from app.models.reservation import Reservation
        query = Reservation.active().filter(Reservation.book_copy_id == self.id)
        return db.session.query(query.exists()).scalar()

    def mark_available(self) -> bool:
        """Flip the copy back to available.

        Refused while any active reservation still covers the copy; the
        reason is left in ``errors`` and the flag is untouched.
        """
        self.errors.clear()
        if self.has_active_reservations():
            self.add_error(None, "Cannot mark as available while there are active reservations")
            return False
        self.available = True
        return True

    def mark_unavailable(self) -> bool:
        """Manually take the copy out of circulation.

        Refused while this is the only available copy of its book.
        """
        self.errors.clear()
        available_count = BookCopy.query.filter_by(book_id=self.book_id, available=True).count()
        if self.available and available_count <= 1:
            self.add_error(None, "Cannot mark as unavailable while there are available copies")
            return False
        self.available = False
        return True

    def to_dict(self, with_book=False):
        data = {
            "id": self.id,
            "book_serial_number": self.book_serial_number,
            "available": self.available,
            "state": self.state.value,
            "book_id": self.book_id,
            "book_title": self.book.title if self.book else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if with_book and self.book:
            data["book"] = {
                key: value
                for key, value in self.book.to_dict().items()
                if key in ("id", "title", "author", "publisher", "isbn", "genre", "edition", "year")
            }
        return data

    def __repr__(self):
        return f"<BookCopy {self.book_serial_number}>"
