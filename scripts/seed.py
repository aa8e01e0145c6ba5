#!/usr/bin/env python3
"""
Seed a development database with librarians, members, books, copies and
a mix of active, overdue and returned reservations.

Usage:
    python scripts/seed.py
"""

import sys
from datetime import date, timedelta

# Add parent directory to path for imports
sys.path.insert(0, ".")

from app import create_app, db
from app.models import Book, BookCopy, Reservation, User, UserRole
from app.services.accounts import AccountService
from app.services.catalog import BookService, BookCopyService
from app.services.reservations import ReservationService

LIBRARIANS = [
    {
        "name": "Alice Johnson",
        "email": "alice.johnson@library.com",
        "birthdate": "1985-03-15",
        "address": {"street": "123 Library Ave", "city": "Booktown", "zip": "12345", "state": "Reading State"},
        "phone_number": "+1-555-0101",
    },
    {
        "name": "Bob Wilson",
        "email": "bob.wilson@library.com",
        "birthdate": "1978-08-22",
        "address": {"street": "456 Knowledge St", "city": "Booktown", "zip": "12346", "state": "Reading State"},
        "phone_number": "+1-555-0102",
    },
]

MEMBERS = [
    {
        "name": "Carol Martinez",
        "email": "carol.martinez@example.com",
        "birthdate": "1992-11-08",
        "address": {"street": "789 Reader Rd", "city": "Pageville", "zip": "23456", "state": "Reading State"},
        "phone_number": "+1-555-0201",
    },
    {
        "name": "David Lee",
        "email": "david.lee@example.com",
        "birthdate": "1988-05-30",
        "address": {"street": "321 Chapter Ct", "city": "Pageville", "zip": "23457", "state": "Reading State"},
        "phone_number": "+1-555-0202",
    },
    {
        "name": "Eva Brown",
        "email": "eva.brown@example.com",
        "birthdate": "2001-01-17",
        "address": {"street": "654 Novel Ln", "city": "Storyburg", "zip": "34567", "state": "Reading State"},
        "phone_number": "+1-555-0203",
    },
]

BOOKS = [
    ("Dune", "Frank Herbert", "Chilton Books", "1st", 1965, "9780441013593", "Science Fiction", 3),
    ("The Left Hand of Darkness", "Ursula K. Le Guin", "Ace Books", "1st", 1969, "9780441478125", "Science Fiction", 2),
    ("Pride and Prejudice", "Jane Austen", "T. Egerton", "Reprint", 1813, "9780141439518", "Classic", 2),
    ("The Pragmatic Programmer", "Andrew Hunt", "Addison-Wesley", "20th Anniversary", 2019, "9780135957059", "Technology", 1),
    ("Beloved", "Toni Morrison", "Alfred A. Knopf", "1st", 1987, "9781400033416", "Fiction", 2),
]

PASSWORD = "password123"


def find_or_register(attrs: dict, role: str) -> User:
    user = User.query.filter_by(email=attrs["email"]).first()
    if user:
        return user
    return AccountService.register({**attrs, "password": PASSWORD}, role=role)


def seed():
    app = create_app()

    with app.app_context():
        print("Seeding users...")
        librarians = [find_or_register(attrs, UserRole.LIBRARIAN) for attrs in LIBRARIANS]
        members = [find_or_register(attrs, UserRole.MEMBER) for attrs in MEMBERS]
        print(f"  {len(librarians)} librarians, {len(members)} members")

        print("Seeding books...")
        copies = []
        for title, author, publisher, edition, year, isbn, genre, copy_count in BOOKS:
            book = Book.query.filter_by(isbn=isbn).first()
            if not book:
                book = BookService.create({
                    "title": title,
                    "author": author,
                    "publisher": publisher,
                    "edition": edition,
                    "year": year,
                    "isbn": isbn,
                    "genre": genre,
                })
            for n in range(1, copy_count + 1):
                serial = f"{isbn[-6:]}-{n}"
                copy = BookCopy.query.filter_by(book_serial_number=serial).first()
                copies.append(copy or BookCopyService.create(book, {"book_serial_number": serial}))
        print(f"  {len(BOOKS)} books, {len(copies)} copies")

        if Reservation.query.count():
            print("Reservations already present, skipping.")
            return 0

        print("Seeding reservations...")
        librarian = librarians[0]
        today = date.today()

        # Active, due in two weeks
        ReservationService.create(members[0], today + timedelta(days=14), book_copy_id=copies[0].id)
        ReservationService.create(members[1], today + timedelta(days=7), book_copy_id=copies[3].id)

        # Returned history
        for member, copy in ((members[0], copies[5]), (members[2], copies[7])):
            reservation = ReservationService.create(member, today + timedelta(days=10), book_copy_id=copy.id)
            ReservationService.mark_returned(reservation.id)

        # Overdue: created through the service, then backdated
        overdue = ReservationService.create(
            librarian, today + timedelta(days=1), book_copy_id=copies[8].id, user_id=members[2].id
        )
        overdue.return_date = today - timedelta(days=3)
        db.session.commit()

        print(f"Done! {Reservation.query.count()} reservations.")

    return 0


if __name__ == "__main__":
    sys.exit(seed())
