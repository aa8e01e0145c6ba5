from datetime import date

import pytest

from app import db
from app.errors import NotFoundError, ValidationError
from app.models import Book, BookCopy, Reservation
from app.services.catalog import BookService, BookCopyService


BOOK_ATTRS = {
    "title": "The Dispossessed",
    "author": "Ursula K. Le Guin",
    "publisher": "Harper & Row",
    "edition": "1st",
    "year": "1974",
    "genre": "Science Fiction",
}


class TestBookService:
    def test_create_coerces_year(self, app):
        book = BookService.create(BOOK_ATTRS)
        assert book.id is not None
        assert book.year == 1974

    def test_create_rejects_missing_fields(self, app):
        with pytest.raises(ValidationError) as excinfo:
            BookService.create({"title": "Untitled"})
        assert "Author can't be blank" in excinfo.value.errors
        assert Book.query.count() == 0

    def test_create_rejects_non_numeric_year(self, app):
        with pytest.raises(ValidationError) as excinfo:
            BookService.create({**BOOK_ATTRS, "year": "nineteen"})
        assert excinfo.value.errors == ["Year is not a number"]

    def test_update_failure_keeps_stored_values(self, app, make_book):
        book = make_book(title="Kept")
        with pytest.raises(ValidationError):
            BookService.update(book, {"title": ""})
        assert db.session.get(Book, book.id).title == "Kept"

    def test_list_filters_case_insensitively(self, app, make_book):
        make_book(title="Dune", genre="Science Fiction")
        make_book(title="Emma", genre="Classic")
        make_book(title="Dune Messiah", genre="Science Fiction")

        titles = [b.title for b in BookService.list({"title": "dune"}).items]
        assert titles == ["Dune", "Dune Messiah"]
        assert [b.title for b in BookService.list({"genre": "classic"}).items] == ["Emma"]

    def test_copy_counts(self, app, make_book, make_reservation):
        book = make_book(copies=3)
        make_reservation(book_copy=book.book_copies[0])
        assert book.total_copies == 3
        assert book.available_copies == 2

    def test_get_missing(self, app):
        with pytest.raises(NotFoundError):
            BookService.get(404)

    def test_delete_blocked_by_active_reservation(self, app, make_book, make_reservation):
        book = make_book(copies=2)
        make_reservation(book_copy=book.book_copies[1])

        with pytest.raises(ValidationError) as excinfo:
            BookService.delete(book)
        assert excinfo.value.errors == ["Cannot delete book with active reservations"]
        assert db.session.get(Book, book.id) is not None

    def test_delete_cascades(self, app, make_book, make_reservation):
        book = make_book(copies=2)
        make_reservation(book_copy=book.book_copies[0], returned_at=date.today())

        BookService.delete(book)

        assert Book.query.count() == 0
        assert BookCopy.query.count() == 0
        assert Reservation.query.count() == 0


class TestBookCopyService:
    def test_create_starts_available(self, app, make_book):
        book = make_book()
        book_copy = BookCopyService.create(book, {"book_serial_number": " ABC-1 ", "available": False})
        assert book_copy.book_serial_number == "ABC-1"
        assert book_copy.available is True

    def test_duplicate_serial(self, app, make_book, make_copy):
        make_copy(serial="DUP-1")
        with pytest.raises(ValidationError) as excinfo:
            BookCopyService.create(make_book(), {"book_serial_number": "DUP-1"})
        assert excinfo.value.errors == ["Book serial number has already been taken"]

    def test_duplicate_serial_caught_by_database(self, app, make_book, make_copy, monkeypatch):
        make_copy(serial="DUP-2")
        monkeypatch.setattr(BookCopy, "is_valid", lambda self: True)

        with pytest.raises(ValidationError) as excinfo:
            BookCopyService.create(make_book(), {"book_serial_number": "DUP-2"})

        assert excinfo.value.errors == ["Book serial number has already been taken"]
        assert BookCopy.query.filter_by(book_serial_number="DUP-2").count() == 1

    def test_blank_serial(self, app, make_book):
        with pytest.raises(ValidationError) as excinfo:
            BookCopyService.create(make_book(), {})
        assert excinfo.value.errors == ["Book serial number can't be blank"]

    def test_update_ignores_availability(self, app, make_copy):
        book_copy = make_copy()
        BookCopyService.update(book_copy, {"book_serial_number": "NEW-1", "available": False})
        assert book_copy.book_serial_number == "NEW-1"
        assert book_copy.available is True

    def test_scoped_lookup(self, app, make_book, make_copy):
        book_copy = make_copy()
        other_book = make_book()

        assert BookCopyService.get(book_copy.id, book_id=book_copy.book_id) is book_copy
        with pytest.raises(NotFoundError):
            BookCopyService.get(book_copy.id, book_id=other_book.id)

    def test_manual_unavailable_refuses_last_copy(self, app, make_copy):
        book_copy = make_copy(serial="X-1")
        with pytest.raises(ValidationError) as excinfo:
            BookCopyService.mark_unavailable(book_copy)
        assert excinfo.value.errors == ["Cannot mark as unavailable while there are available copies"]
        assert db.session.get(BookCopy, book_copy.id).available is True

    def test_delete_blocked_by_active_reservation(self, app, make_reservation):
        reservation = make_reservation()
        with pytest.raises(ValidationError) as excinfo:
            BookCopyService.delete(reservation.book_copy)
        assert excinfo.value.errors == ["Cannot delete book copy with active reservations"]

    def test_delete_with_only_ended_reservations(self, app, make_copy, make_reservation):
        book_copy = make_copy()
        make_reservation(book_copy=book_copy, returned_at=date.today())
        make_reservation(book_copy=book_copy, returned_at=date.today())

        BookCopyService.delete(book_copy)

        assert BookCopy.query.count() == 0
        assert Reservation.query.count() == 0

    def test_list(self, app, make_book, make_reservation):
        book = make_book(copies=3)
        make_reservation(book_copy=book.book_copies[0])

        page = BookCopyService.list(book, {"available": "true"})
        assert page.total == 2
        assert all(c.available for c in page.items)
