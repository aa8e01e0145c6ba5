from flask import Blueprint
from flask_login import login_user, logout_user, current_user

from app.errors import UnauthenticatedError
from app.services.accounts import AccountService
from app.utils import resource_params

bp = Blueprint("auth", __name__)


@bp.route("/signup", methods=["POST"])
def signup():
    """Register a new member account."""
    user = AccountService.register(resource_params("user"))
    return {"message": "Signed up.", "user": user.to_dict()}, 201


@bp.route("/login", methods=["POST"])
def login():
    params = resource_params("user")
    user = AccountService.authenticate(params.get("email"), params.get("password"))
    login_user(user)
    return {"user": user.to_dict(), "token": AccountService.issue_token(user)}


@bp.route("/logout", methods=["DELETE"])
def logout():
    # Bearer tokens expire on their own; this ends the cookie session
    if not current_user.is_authenticated:
        raise UnauthenticatedError("User has no active session.")
    logout_user()
    return {"message": "Logged out successfully."}
