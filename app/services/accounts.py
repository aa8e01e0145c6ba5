import logging

from flask import current_app
from itsdangerous import URLSafeTimedSerializer, SignatureExpired, BadSignature
from sqlalchemy.exc import IntegrityError

from app import db
from app.errors import UnauthenticatedError, ValidationError, integrity_messages
from app.models import User, UserRole
from app.utils import parse_date

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
TOKEN_SALT = "api-token"


def _text(value) -> str:
    """Stripped string input; anything that is not a string counts as blank."""
    return value.strip() if isinstance(value, str) else ""


class AccountService:
    """Sign-up, credential checks and API tokens."""

    @staticmethod
    def _serializer() -> URLSafeTimedSerializer:
        return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=TOKEN_SALT)

    @staticmethod
    def register(attrs: dict, role: str = UserRole.MEMBER) -> User:
        """Create a user; sign-ups through the API are always members."""
        errors = []
        try:
            birthdate = parse_date(attrs.get("birthdate"))
        except ValueError:
            birthdate = None
            errors.append("Birthdate is invalid")

        user = User(
            email=_text(attrs.get("email")),
            name=attrs.get("name"),
            birthdate=birthdate,
            address=attrs.get("address"),
            phone_number=attrs.get("phone_number"),
            role=role,
        )

        password = attrs.get("password")
        if not isinstance(password, str):
            password = ""
        if len(password) < MIN_PASSWORD_LENGTH:
            errors.append(f"Password is too short (minimum is {MIN_PASSWORD_LENGTH} characters)")
        elif attrs.get("password_confirmation") not in (None, password):
            errors.append("Password confirmation doesn't match Password")

        if not user.is_valid() or errors:
            raise ValidationError(user.errors + errors, message="Sign up failed")

        user.set_password(password)
        db.session.add(user)
        try:
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            raise ValidationError(integrity_messages(exc), message="Sign up failed") from exc

        logger.info("Registered %s %s", user.role, user.email)
        return user

    @staticmethod
    def authenticate(email: str, password: str) -> User:
        user = User.query.filter(db.func.lower(User.email) == _text(email).lower()).first()
        if user is None or not isinstance(password, str) or not user.check_password(password):
            raise UnauthenticatedError("Invalid email or password", message="Invalid email or password")
        return user

    @staticmethod
    def issue_token(user: User) -> str:
        return AccountService._serializer().dumps(user.id)

    @staticmethod
    def load_token(token: str) -> User | None:
        """Return the user a token was issued to, or None if it is bad or expired."""
        max_age = current_app.config.get("TOKEN_MAX_AGE", 24 * 60 * 60)
        try:
            user_id = AccountService._serializer().loads(token, max_age=max_age)
        except SignatureExpired:
            logger.info("Rejected expired API token")
            return None
        except BadSignature:
            return None
        return db.session.get(User, user_id)
