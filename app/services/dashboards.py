from datetime import date

from app import db
from app.models import Book, BookCopy, Reservation, User, UserRole

MINUTE = 60
HOUR = 60 * MINUTE


def _reservation_rows(query, with_returned_at=False) -> list[dict]:
    rows = []
    for row in db.session.execute(query):
        item = {
            "id": row.id,
            "return_date": row.return_date.isoformat() if row.return_date else None,
            "book_serial_number": row.book_serial_number,
            "title": row.title,
            "author": row.author,
        }
        if with_returned_at:
            item["returned_at"] = row.returned_at.isoformat() if row.returned_at else None
        rows.append(item)
    return rows


class LibrarianDashboard:
    """Library-wide loan summary for librarians."""

    TOTAL_BOOKS_TTL = 1 * HOUR
    RESERVATION_STATS_TTL = 10 * MINUTE
    OVERDUE_MEMBERS_TTL = 10 * MINUTE
    OVERDUE_MEMBERS_LIMIT = 50

    def __init__(self, cache):
        self.cache = cache

    def call(self, today: date = None) -> dict:
        """
        Returns dict with:
            - total_books: Number of physical copies
            - total_borrowed_books: Active reservations
            - books_due_today: Active reservations due today
            - overdue_members: Members holding an overdue copy (id, name, email)
        """
        today = today or date.today()
        stats = self.reservation_stats(today)
        return {
            "total_books": self.total_books(),
            "total_borrowed_books": stats["borrowed_count"],
            "books_due_today": stats["due_today_count"],
            "overdue_members": self.overdue_members(today),
        }

    def total_books(self) -> int:
        return self.cache.fetch(
            "dashboard:librarian:total_books",
            self.TOTAL_BOOKS_TTL,
            lambda: db.session.scalar(db.select(db.func.count(BookCopy.id))) or 0,
        )

    def reservation_stats(self, today: date) -> dict:
        def compute():
            active = Reservation.active()
            return {
                "borrowed_count": active.count(),
                "due_today_count": active.filter(Reservation.return_date == today).count(),
            }

        return self.cache.fetch(
            f"dashboard:librarian:reservation_stats:{today.isoformat()}",
            self.RESERVATION_STATS_TTL,
            compute,
        )

    def overdue_members(self, today: date) -> list[dict]:
        def compute():
            query = (
                db.select(User.id, User.name, User.email)
                .join(Reservation, Reservation.user_id == User.id)
                .where(
                    User.role == UserRole.MEMBER,
                    Reservation.returned_at.is_(None),
                    Reservation.return_date < today,
                )
                .distinct()
                .order_by(User.name, User.id)
                .limit(self.OVERDUE_MEMBERS_LIMIT)
            )
            return [
                {"id": row.id, "name": row.name, "email": row.email}
                for row in db.session.execute(query)
            ]

        return self.cache.fetch(
            f"dashboard:librarian:overdue_members:{today.isoformat()}",
            self.OVERDUE_MEMBERS_TTL,
            compute,
        )


class MemberDashboard:
    """A member's own loans: current, overdue and recently returned."""

    CURRENT_TTL = 15 * MINUTE
    HISTORY_TTL = 1 * HOUR
    CURRENT_LIMIT = 20
    HISTORY_LIMIT = 10

    def __init__(self, cache):
        self.cache = cache

    def call(self, user: User, today: date = None) -> dict:
        today = today or date.today()
        return {
            "active_not_overdue_reservations": self.active_not_overdue_reservations(user.id, today),
            "active_overdue_reservations": self.active_overdue_reservations(user.id, today),
            "recent_reservation_history": self.recent_reservation_history(user.id),
        }

    @staticmethod
    def _base_query(user_id, *extra_columns):
        return (
            db.select(
                Reservation.id,
                Reservation.return_date,
                *extra_columns,
                BookCopy.book_serial_number,
                Book.title,
                Book.author,
            )
            .join(BookCopy, Reservation.book_copy_id == BookCopy.id)
            .join(Book, BookCopy.book_id == Book.id)
            .where(Reservation.user_id == user_id)
        )

    def active_not_overdue_reservations(self, user_id, today: date) -> list[dict]:
        """Borrowed books not yet overdue, including those due today."""
        query = (
            self._base_query(user_id)
            .where(Reservation.returned_at.is_(None), Reservation.return_date >= today)
            .order_by(Reservation.return_date, Reservation.id)
            .limit(self.CURRENT_LIMIT)
        )
        return self.cache.fetch(
            f"dashboard:member:current_books:{user_id}:{today.isoformat()}",
            self.CURRENT_TTL,
            lambda: _reservation_rows(query),
        )

    def active_overdue_reservations(self, user_id, today: date) -> list[dict]:
        query = (
            self._base_query(user_id)
            .where(Reservation.returned_at.is_(None), Reservation.return_date < today)
            .order_by(Reservation.return_date, Reservation.id)
            .limit(self.CURRENT_LIMIT)
        )
        return self.cache.fetch(
            f"dashboard:member:overdue_books:{user_id}:{today.isoformat()}",
            self.CURRENT_TTL,
            lambda: _reservation_rows(query),
        )

    def recent_reservation_history(self, user_id) -> list[dict]:
        """The most recently returned loans."""
        query = (
            self._base_query(user_id, Reservation.returned_at)
            .where(Reservation.returned_at.isnot(None))
            .order_by(Reservation.returned_at.desc(), Reservation.id.desc())
            .limit(self.HISTORY_LIMIT)
        )
        return self.cache.fetch(
            f"dashboard:member:history:{user_id}",
            self.HISTORY_TTL,
            lambda: _reservation_rows(query, with_returned_at=True),
        )
