import itertools
from datetime import date, timedelta

import pytest
from flask import g

from app import create_app, db
from app.config import Config
from app.models import Book, BookCopy, Reservation, User, UserRole
from app.services.accounts import AccountService

_sequence = itertools.count(1)


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    CACHE_URL = "memory://"


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    @app.before_request
    def forget_previous_user():
        # Test requests share the fixture's app context, and with it g
        g.pop("_login_user", None)

    return app.test_client()


@pytest.fixture
def cache(app):
    return app.extensions["cache"]


@pytest.fixture
def make_user(app):
    def _make_user(role=UserRole.MEMBER, **overrides):
        n = next(_sequence)
        attrs = {
            "email": f"user{n}@example.com",
            "name": f"User {n}",
            "birthdate": date(1990, 1, 1),
            "address": {"street": f"{n} Main St", "city": "Springfield", "zip": "12345", "state": "IL"},
            "phone_number": "+1-555-0100",
            "role": role,
        }
        attrs.update(overrides)
        user = User(**attrs)
        user.set_password("password123")
        db.session.add(user)
        db.session.commit()
        return user
    return _make_user


@pytest.fixture
def librarian(make_user):
    return make_user(role=UserRole.LIBRARIAN, name="Libby Rarian")


@pytest.fixture
def member(make_user):
    return make_user(name="Molly Member")


@pytest.fixture
def make_book(app):
    def _make_book(copies=0, **overrides):
        n = next(_sequence)
        attrs = {
            "title": f"Book {n}",
            "author": "Some Author",
            "publisher": "Some Publisher",
            "edition": "1st",
            "year": 2000,
        }
        attrs.update(overrides)
        book = Book(**attrs)
        db.session.add(book)
        for _ in range(copies):
            db.session.add(BookCopy(book=book, book_serial_number=f"SN-{next(_sequence)}", available=True))
        db.session.commit()
        return book
    return _make_book


@pytest.fixture
def make_copy(make_book):
    def _make_copy(book=None, serial=None, available=True):
        book = book or make_book()
        book_copy = BookCopy(
            book=book,
            book_serial_number=serial or f"SN-{next(_sequence)}",
            available=available,
        )
        db.session.add(book_copy)
        db.session.commit()
        return book_copy
    return _make_copy


@pytest.fixture
def make_reservation(make_user, make_copy):
    """Insert a reservation directly, bypassing the lifecycle checks.

    Lets tests set up overdue or already-returned loans; the copy's flag is
    kept in line with the reservation's state.
    """
    def _make_reservation(user=None, book_copy=None, return_date=None, returned_at=None):
        user = user or make_user()
        book_copy = book_copy or make_copy()
        reservation = Reservation(
            user=user,
            book_copy=book_copy,
            return_date=return_date or date.today() + timedelta(days=7),
            returned_at=returned_at,
        )
        if returned_at is None:
            book_copy.available = False
        db.session.add(reservation)
        db.session.commit()
        return reservation
    return _make_reservation


@pytest.fixture
def auth_headers(app):
    def _auth_headers(user):
        return {"Authorization": f"Bearer {AccountService.issue_token(user)}"}
    return _auth_headers
