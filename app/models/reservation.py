import enum
from datetime import date, timedelta

from app import db
from app.models.validation import Validatable


class ReservationState(str, enum.Enum):
    """Lifecycle of a loan: active until returned, then immutable history."""
    ACTIVE = "active"
    RETURNED = "returned"


class Reservation(Validatable, db.Model):
    """A loan binding one user to one book copy until it is returned."""

    __tablename__ = "reservations"
    __table_args__ = (
        # At most one active reservation per copy
        db.Index(
            "uq_reservations_active_copy",
            "book_copy_id",
            unique=True,
            postgresql_where=db.text("returned_at IS NULL"),
            sqlite_where=db.text("returned_at IS NULL"),
        ),
        db.Index("ix_reservations_user_returned", "user_id", "returned_at"),
        db.Index("ix_reservations_return_date_returned", "return_date", "returned_at"),
    )

    DEFAULT_RETURN_DAYS = 14

    id = db.Column(db.Integer, primary_key=True)
    book_copy_id = db.Column(
        db.Integer, db.ForeignKey("book_copies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    return_date = db.Column(db.Date, nullable=False, index=True)
    returned_at = db.Column(db.Date, index=True)
    created_at = db.Column(db.DateTime, server_default=db.func.now())
    updated_at = db.Column(db.DateTime, server_default=db.func.now(), onupdate=db.func.now())

    # Relationships
    book_copy = db.relationship("BookCopy", back_populates="reservations")
    user = db.relationship("User", back_populates="reservations")

    @property
    def state(self) -> ReservationState:
        return ReservationState.ACTIVE if self.returned_at is None else ReservationState.RETURNED

    @property
    def is_active(self):
        return self.state is ReservationState.ACTIVE

    @property
    def is_overdue(self):
        return self.is_active and self.return_date is not None and self.return_date < date.today()

    def set_reservation_days(self, days=DEFAULT_RETURN_DAYS):
        self.return_date = date.today() + timedelta(days=days)

    def validate(self):
        if self.user is None and self.user_id is None:
            self.add_error("user", "must exist")
        if self.book_copy is None and self.book_copy_id is None:
            self.add_error("book_copy", "must exist")
        if self.return_date is None:
            self.add_error("return_date", "can't be blank")

    # Query helpers

    @classmethod
    def active(cls):
        return cls.query.filter(cls.returned_at.is_(None))

    @classmethod
    def ended(cls):
        return cls.query.filter(cls.returned_at.isnot(None))

    @classmethod
    def overdue(cls, today: date = None):
        return cls.active().filter(cls.return_date < (today or date.today()))

    @classmethod
    def not_overdue(cls, today: date = None):
        return cls.active().filter(cls.return_date >= (today or date.today()))

    @classmethod
    def due_on(cls, day: date):
        return cls.query.filter(cls.return_date == day)

    @classmethod
    def due_today(cls):
        return cls.due_on(date.today())

    @classmethod
    def for_user(cls, user_id):
        return cls.query.filter(cls.user_id == user_id)

    @classmethod
    def for_book_copy(cls, book_copy_id):
        return cls.query.filter(cls.book_copy_id == book_copy_id)

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "book_copy_id": self.book_copy_id,
            "return_date": self.return_date.isoformat() if self.return_date else None,
            "returned_at": self.returned_at.isoformat() if self.returned_at else None,
            "state": self.state.value,
            "overdue": self.is_overdue,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Reservation {self.id} - {self.state.value}>"
