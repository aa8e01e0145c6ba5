from datetime import date, timedelta

from app import db
from app.services.dashboards import LibrarianDashboard, MemberDashboard
from app.services.reservations import ReservationService
from app.services.cache import Cache, CacheUnavailable, MemoryCache


def in_days(days):
    return date.today() + timedelta(days=days)


class BrokenCache(Cache):
    """A backend that is always down."""

    def get(self, key):
        raise CacheUnavailable("connection refused")

    def set(self, key, value, ttl):
        raise CacheUnavailable("connection refused")


class TestLibrarianDashboard:
    def test_empty_library(self, app, make_book):
        make_book(copies=2)
        make_book(copies=2)

        result = LibrarianDashboard(MemoryCache()).call()

        assert result == {
            "total_books": 4,
            "total_borrowed_books": 0,
            "books_due_today": 0,
            "overdue_members": [],
        }

    def test_mixed_reservation_states(self, app, make_user, make_reservation):
        alice = make_user(name="Alice")
        bob = make_user(name="Bob")
        make_reservation(user=alice, return_date=in_days(5))
        make_reservation(user=bob, return_date=in_days(0))
        make_reservation(user=alice, return_date=in_days(-1))
        make_reservation(user=bob, return_date=in_days(-3), returned_at=in_days(0))

        result = LibrarianDashboard(MemoryCache()).call()

        assert result["total_books"] == 4
        assert result["total_borrowed_books"] == 3
        assert result["books_due_today"] == 1
        assert result["overdue_members"] == [{"id": alice.id, "name": "Alice", "email": alice.email}]

    def test_overdue_members_are_distinct_members_only(self, app, make_user, librarian, make_reservation):
        member = make_user(name="Late Larry")
        make_reservation(user=member, return_date=in_days(-1))
        make_reservation(user=member, return_date=in_days(-4))
        make_reservation(user=librarian, return_date=in_days(-2))

        result = LibrarianDashboard(MemoryCache()).call()

        assert [m["id"] for m in result["overdue_members"]] == [member.id]

    def test_overdue_members_capped(self, app, make_user, make_reservation):
        for _ in range(55):
            make_reservation(user=make_user(), return_date=in_days(-1))

        result = LibrarianDashboard(MemoryCache()).call()

        assert len(result["overdue_members"]) == LibrarianDashboard.OVERDUE_MEMBERS_LIMIT

    def test_cached_within_ttl(self, app, member, make_book, make_copy):
        make_book(copies=1)
        book_copy = make_copy()
        dashboard = LibrarianDashboard(MemoryCache())
        before = dashboard.call()

        make_book(copies=3)
        ReservationService.create(member, in_days(3), book_copy_id=book_copy.id)

        assert dashboard.call() == before

    def test_expired_entries_are_recomputed(self, app, make_book):
        now = [0.0]
        dashboard = LibrarianDashboard(MemoryCache(clock=lambda: now[0]))
        make_book(copies=1)
        assert dashboard.call()["total_books"] == 1

        make_book(copies=2)
        now[0] += LibrarianDashboard.TOTAL_BOOKS_TTL + 1
        assert dashboard.call()["total_books"] == 3

    def test_cache_failure_degrades_to_direct_computation(self, app, make_book, make_reservation):
        make_book(copies=2)
        make_reservation(return_date=in_days(0))

        result = LibrarianDashboard(BrokenCache()).call()

        assert result["total_books"] == 3
        assert result["books_due_today"] == 1


class TestMemberDashboard:
    def test_views_are_scoped_to_the_member(self, app, member, make_user, make_book, make_copy, make_reservation):
        book = make_book(title="Dune", author="Frank Herbert")
        current = make_reservation(user=member, book_copy=make_copy(book=book, serial="D-1"), return_date=in_days(3))
        due_today = make_reservation(user=member, return_date=in_days(0))
        overdue = make_reservation(user=member, return_date=in_days(-2))
        returned = make_reservation(user=member, return_date=in_days(-10), returned_at=in_days(-9))
        make_reservation(user=make_user(), return_date=in_days(-2))

        result = MemberDashboard(MemoryCache()).call(member)

        assert [r["id"] for r in result["active_not_overdue_reservations"]] == [due_today.id, current.id]
        assert result["active_not_overdue_reservations"][1] == {
            "id": current.id,
            "return_date": in_days(3).isoformat(),
            "book_serial_number": "D-1",
            "title": "Dune",
            "author": "Frank Herbert",
        }
        assert [r["id"] for r in result["active_overdue_reservations"]] == [overdue.id]
        assert [r["id"] for r in result["recent_reservation_history"]] == [returned.id]
        assert result["recent_reservation_history"][0]["returned_at"] == in_days(-9).isoformat()

    def test_history_keeps_the_ten_most_recent(self, app, member, make_reservation):
        returned = [
            make_reservation(user=member, return_date=in_days(-30 + i), returned_at=in_days(-30 + i))
            for i in range(12)
        ]

        history = MemberDashboard(MemoryCache()).call(member)["recent_reservation_history"]

        assert [r["id"] for r in history] == [r.id for r in reversed(returned)][:10]

    def test_cached_per_member(self, app, member, make_user, make_reservation):
        other = make_user()
        cache = MemoryCache()
        make_reservation(user=member, return_date=in_days(4))
        before = MemberDashboard(cache).call(member)

        make_reservation(user=member, return_date=in_days(6))
        make_reservation(user=other, return_date=in_days(6))

        assert MemberDashboard(cache).call(member) == before
        assert len(MemberDashboard(cache).call(other)["active_not_overdue_reservations"]) == 1

    def test_stale_history_survives_a_return(self, app, member, make_reservation):
        cache = MemoryCache()
        reservation = make_reservation(user=member, return_date=in_days(4))
        assert MemberDashboard(cache).call(member)["recent_reservation_history"] == []

        ReservationService.mark_returned(reservation.id)
        db.session.expire_all()

        assert MemberDashboard(cache).call(member)["recent_reservation_history"] == []
        assert len(MemberDashboard(MemoryCache()).call(member)["recent_reservation_history"]) == 1
