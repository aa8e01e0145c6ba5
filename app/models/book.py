from app import db
from app.models.validation import Validatable


class Book(Validatable, db.Model):
    """Catalog entry shared by every physical copy of a title."""

    __tablename__ = "books"
    __table_args__ = (
        db.Index("ix_books_title_author", "title", "author"),
        db.Index("ix_books_author_genre", "author", "genre"),
        db.Index("ix_books_genre_year", "genre", "year"),
    )

    REQUIRED_FIELDS = ("title", "author", "publisher", "edition", "year")
    FILTER_FIELDS = ("title", "author", "genre")

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False, index=True)
    author = db.Column(db.String(255), nullable=False, index=True)
    publisher = db.Column(db.String(255), nullable=False)
    edition = db.Column(db.String(100), nullable=False)
    year = db.Column(db.Integer, nullable=False)
    isbn = db.Column(db.String(20))
    genre = db.Column(db.String(100), index=True)
    created_at = db.Column(db.DateTime, server_default=db.func.now())
    updated_at = db.Column(db.DateTime, server_default=db.func.now(), onupdate=db.func.now())

    # Relationships
    book_copies = db.relationship(
        "BookCopy",
        back_populates="book",
        cascade="all, delete-orphan",
        order_by="BookCopy.book_serial_number",
    )

    def validate(self):
        self.validate_presence(*self.REQUIRED_FIELDS)
        if self.year is not None and not isinstance(self.year, int):
            self.add_error("year", "is not a number")

    @property
    def total_copies(self):
        return len(self.book_copies)

    @property
    def available_copies(self):
        return sum(1 for copy in self.book_copies if copy.available)

    def to_dict(self, with_copies=False):
        data = {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "publisher": self.publisher,
            "isbn": self.isbn,
            "genre": self.genre,
            "edition": self.edition,
            "year": self.year,
            "total_copies": self.total_copies,
            "available_copies": self.available_copies,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if with_copies:
            data["book_copies"] = [copy.to_dict() for copy in self.book_copies]
        return data

    def __repr__(self):
        return f"<Book {self.title}>"
