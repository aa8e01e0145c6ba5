from datetime import date
from functools import wraps

from flask_login import UserMixin, current_user
from sqlalchemy.dialects.postgresql import JSONB
from werkzeug.security import generate_password_hash, check_password_hash

from app import db, login_manager
from app.errors import ForbiddenError, UnauthenticatedError
from app.models.validation import Validatable
from app.utils import is_valid_email, is_valid_phone


class UserRole:
    """User role constants."""
    LIBRARIAN = "librarian"
    MEMBER = "member"

    ALL = (LIBRARIAN, MEMBER)


ADDRESS_KEYS = ("street", "city", "zip", "state")


class User(Validatable, UserMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256))
    name = db.Column(db.String(200), nullable=False)
    birthdate = db.Column(db.Date, nullable=False)
    address = db.Column(db.JSON().with_variant(JSONB(), "postgresql"), nullable=False, default=dict)
    phone_number = db.Column(db.String(30), nullable=False)
    role = db.Column(db.String(20), default=UserRole.MEMBER, nullable=False, index=True)
    created_at = db.Column(db.DateTime, server_default=db.func.now())
    updated_at = db.Column(db.DateTime, server_default=db.func.now(), onupdate=db.func.now())

    # Relationships
    reservations = db.relationship(
        "Reservation", back_populates="user", cascade="all, delete-orphan"
    )

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return bool(self.password_hash) and check_password_hash(self.password_hash, password)

    @property
    def is_librarian(self):
        return self.role == UserRole.LIBRARIAN

    @property
    def is_member(self):
        return self.role == UserRole.MEMBER

    def validate(self):
        self.validate_presence("name", "birthdate", "phone_number", "email")

        if self.name is not None and not isinstance(self.name, str):
            self.add_error("name", "is invalid")

        if self.role is not None and self.role not in UserRole.ALL:
            self.add_error("role", "is not included in the list")

        if self.email:
            if not is_valid_email(self.email):
                self.add_error("email", "is invalid")
            else:
                with db.session.no_autoflush:
                    query = User.query.filter(db.func.lower(User.email) == self.email.strip().lower())
                    if self.id is not None:
                        query = query.filter(User.id != self.id)
                    taken = db.session.query(query.exists()).scalar()
                if taken:
                    self.add_error("email", "has already been taken")

        if self.phone_number and not is_valid_phone(self.phone_number):
            self.add_error("phone_number", "is invalid")

        if isinstance(self.birthdate, date) and self.birthdate > date.today():
            self.add_error("birthdate", "can't be in the future")

        self._validate_address()

    def _validate_address(self):
        if self.address is None or (isinstance(self.address, (dict, str)) and not self.address):
            self.add_error("address", "can't be blank")
            return
        if not isinstance(self.address, dict):
            self.add_error("address", "must be an object")
            return

        present = {str(key) for key in self.address.keys()}
        missing = [key for key in ADDRESS_KEYS if key not in present]
        if missing:
            self.add_error("address", f"must contain the keys: {', '.join(missing)}")

    @classmethod
    def librarians(cls):
        return cls.query.filter_by(role=UserRole.LIBRARIAN)

    @classmethod
    def members(cls):
        return cls.query.filter_by(role=UserRole.MEMBER)

    @classmethod
    def with_open_reservations(cls):
        from app.models.reservation import Reservation
        return cls.query.join(cls.reservations).filter(Reservation.returned_at.is_(None)).distinct()

    @classmethod
    def with_overdue_reservations(cls, today: date = None):
        from app.models.reservation import Reservation
        today = today or date.today()
        return (
            cls.query.join(cls.reservations)
            .filter(Reservation.returned_at.is_(None), Reservation.return_date < today)
            .distinct()
        )

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "birthdate": self.birthdate.isoformat() if self.birthdate else None,
            "address": self.address,
            "phone_number": self.phone_number,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<User {self.email}>"


def librarian_required(f):
    """Decorator to require the librarian role for a route."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            raise UnauthenticatedError()
        if not current_user.is_librarian:
            raise ForbiddenError()
        return f(*args, **kwargs)
    return decorated_function


@login_manager.user_loader
def load_user(id):
    return db.session.get(User, int(id))


@login_manager.request_loader
def load_user_from_request(req):
    """Resolve ``Authorization: Bearer <token>`` to a user."""
    header = req.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        return None
    from app.services.accounts import AccountService
    return AccountService.load_token(header[len("Bearer "):].strip())


@login_manager.unauthorized_handler
def unauthorized():
    raise UnauthenticatedError(message="Authentication required")
