from flask import Blueprint
from flask_login import login_required, current_user

from app.errors import ForbiddenError
from app.models import librarian_required
from app.services.reservations import ReservationService
from app.utils import filter_params, page_params, pagination_meta, parse_int, resource_params

bp = Blueprint("reservations", __name__)

FILTERS = ("user_id", "book_copy_id", "book_id", "return_date_start", "return_date_end", "overdue")


@bp.route("", methods=["GET"])
@login_required
@librarian_required
def index():
    """List all reservations (librarians only)."""
    filters = filter_params(*FILTERS)
    page, per_page = page_params()
    reservations = ReservationService.list(filters, page=page, per_page=per_page)
    return {
        "reservations": [reservation.to_dict() for reservation in reservations.items],
        "meta": pagination_meta(reservations),
        "filters": filters,
    }


@bp.route("/<int:id>", methods=["GET"])
@login_required
@librarian_required
def show(id):
    return ReservationService.get(id).to_dict()


@bp.route("/create", methods=["POST"])
@bp.route("", methods=["POST"])
@login_required
def create():
    """Reserve a copy (or any available copy of a book) until the return date."""
    params = resource_params("reservation")
    user_id = params.get("user_id")

    # Members reserve for themselves; librarians may reserve on behalf of anyone
    if user_id not in (None, "") and parse_int(user_id) != current_user.id and not current_user.is_librarian:
        raise ForbiddenError()

    reservation = ReservationService.create(
        current_user,
        params.get("return_date"),
        book_copy_id=params.get("book_copy_id"),
        book_id=params.get("book_id"),
        user_id=user_id,
    )
    return reservation.to_dict(), 201


@bp.route("/<int:id>/return", methods=["PATCH"])
@login_required
@librarian_required
def return_book(id):
    reservation = ReservationService.mark_returned(id)
    return {"message": "Book returned successfully", "reservation": reservation.to_dict()}
