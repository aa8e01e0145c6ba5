"""Reservation lifecycle: creating loans and taking returns.

Both transitions touch two rows, the reservation and the copy it covers, and
commit them together so a copy is never seen as available while an active
reservation exists for it (or the other way round).
"""

import logging
from datetime import date, timedelta

from sqlalchemy.exc import IntegrityError

from app import db
from app.errors import NotFoundError, ValidationError, integrity_messages
from app.models import Book, BookCopy, Reservation, User
from app.utils import parse_date, parse_int

logger = logging.getLogger(__name__)

DEFAULT_RANGE_DAYS = 14


class ReservationService:
    """Creates, returns and lists reservations."""

    @staticmethod
    def _locked_copy(copy_id) -> BookCopy | None:
        """Load a copy with a row lock held until the transaction ends."""
        return db.session.execute(
            db.select(BookCopy).where(BookCopy.id == copy_id).with_for_update()
        ).scalar_one_or_none()

    @staticmethod
    def _locked_available_copy(book_id) -> BookCopy | None:
        return db.session.execute(
            db.select(BookCopy)
            .where(BookCopy.book_id == book_id, BookCopy.available.is_(True))
            .order_by(BookCopy.id)
            .limit(1)
            .with_for_update()
        ).scalar_one_or_none()

    @staticmethod
    def create(actor: User, return_date, book_copy_id=None, book_id=None, user_id=None) -> Reservation:
        """Reserve a copy for a user until *return_date*.

        Args:
            actor: The authenticated user; the borrower when *user_id* is omitted
            return_date: Due date (date or ISO string), strictly after today
            book_copy_id: The copy to reserve
            book_id: Alternatively, a book whose first available copy is reserved
            user_id: Borrower, defaults to *actor*

        Returns:
            The committed Reservation

        Raises:
            ValidationError: missing fields, due date not in the future, or the
                copy is already reserved
            NotFoundError: unknown user, copy or book, or no copy available
        """
        missing = []
        if book_copy_id in (None, "") and book_id in (None, ""):
            missing.append("Book copy can't be blank")
        if return_date in (None, ""):
            missing.append("Return date can't be blank")
        if missing:
            raise ValidationError(missing, message="Failed to create reservation")

        try:
            due = parse_date(return_date)
        except ValueError:
            raise ValidationError("Return date is invalid", message="Failed to create reservation")
        if due <= date.today():
            raise ValidationError(
                "Return date must be after today", message="Failed to create reservation"
            )

        borrower = actor
        if user_id not in (None, ""):
            borrower = db.session.get(User, parse_int(user_id)) if parse_int(user_id) else None
        if borrower is None:
            raise NotFoundError("User not found", message="The requested user does not exist")

        try:
            if book_copy_id not in (None, ""):
                book_copy = ReservationService._locked_copy(parse_int(book_copy_id))
                if book_copy is None:
                    raise NotFoundError("Book copy not found", message="The requested book copy does not exist")
            else:
                book_pk = parse_int(book_id)
                if book_pk is None or db.session.get(Book, book_pk) is None:
                    raise NotFoundError("Book not found", message="The requested book does not exist")
                book_copy = ReservationService._locked_available_copy(book_pk)
                if book_copy is None:
                    raise NotFoundError(
                        "No available copies for this book",
                        message="The requested book has no available copies",
                    )

            if book_copy.has_active_reservations():
                raise ValidationError("Book copy is already reserved", message="Failed to create reservation")

            reservation = Reservation(user=borrower, book_copy=book_copy, return_date=due)
            if not reservation.is_valid():
                raise ValidationError(reservation.errors, message="Failed to create reservation")

            book_copy.available = False
            db.session.add(reservation)
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            raise ValidationError(integrity_messages(exc), message="Failed to create reservation") from exc
        except (NotFoundError, ValidationError):
            db.session.rollback()
            raise

        logger.info(
            "Reservation %s: copy %s reserved by user %s until %s",
            reservation.id, book_copy.book_serial_number, borrower.id, due.isoformat(),
        )
        return reservation

    @staticmethod
    def get(reservation_id) -> Reservation:
        reservation = db.session.get(Reservation, reservation_id) if reservation_id is not None else None
        if reservation is None:
            raise NotFoundError("Reservation not found", message="The requested reservation does not exist")
        return reservation

    @staticmethod
    def mark_returned(reservation_id) -> Reservation:
        """End an active reservation and put its copy back on the shelf."""
        reservation = ReservationService.get(reservation_id)
        if reservation.returned_at is not None:
            raise ValidationError("Book has already been returned", message="Failed to return book")

        book_copy = ReservationService._locked_copy(reservation.book_copy_id)
        reservation.returned_at = date.today()
        db.session.flush()

        if not book_copy.mark_available():
            errors = list(book_copy.errors)
            db.session.rollback()
            raise ValidationError(errors, message="Failed to return book")

        db.session.commit()
        logger.info(
            "Reservation %s returned; copy %s available", reservation.id, book_copy.book_serial_number
        )
        return reservation

    @staticmethod
    def list(filters: dict, page: int = 1, per_page: int = 20):
        """Filtered, paginated reservations, latest due date first.

        Filters: user_id, book_copy_id, book_id, return_date_start,
        return_date_end, overdue ("true" for overdue only, "false" for
        active only).
        """
        query = db.select(Reservation)

        user_id = parse_int(filters.get("user_id"))
        if user_id is not None:
            query = query.where(Reservation.user_id == user_id)

        book_copy_id = parse_int(filters.get("book_copy_id"))
        if book_copy_id is not None:
            query = query.where(Reservation.book_copy_id == book_copy_id)

        book_id = parse_int(filters.get("book_id"))
        if book_id is not None:
            query = query.join(BookCopy, Reservation.book_copy_id == BookCopy.id).where(
                BookCopy.book_id == book_id
            )

        try:
            start = parse_date(filters.get("return_date_start"))
            end = parse_date(filters.get("return_date_end"))
        except ValueError as exc:
            raise ValidationError(f"Return date range is invalid: {exc}", message="Invalid filters")
        if start is not None:
            end = end or date.today() + timedelta(days=DEFAULT_RANGE_DAYS)
            query = query.where(Reservation.return_date >= start)
        if end is not None:
            query = query.where(Reservation.return_date <= end)

        overdue = filters.get("overdue")
        if overdue == "true":
            query = query.where(Reservation.returned_at.is_(None), Reservation.return_date < date.today())
        elif overdue == "false":
            query = query.where(Reservation.returned_at.is_(None))

        query = query.order_by(Reservation.return_date.desc(), Reservation.id.desc())
        return db.paginate(query, page=page, per_page=per_page, error_out=False)
