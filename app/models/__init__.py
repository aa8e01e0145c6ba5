from app.models.user import User, UserRole, librarian_required
from app.models.book import Book
from app.models.book_copy import BookCopy, CopyState
from app.models.reservation import Reservation, ReservationState

__all__ = [
    "User",
    "UserRole",
    "librarian_required",
    "Book",
    "BookCopy",
    "CopyState",
    "Reservation",
    "ReservationState",
]
