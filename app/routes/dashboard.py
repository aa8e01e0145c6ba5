from flask import Blueprint
from flask_login import login_required, current_user

from app.services.dashboards import LibrarianDashboard, MemberDashboard
from app.services.cache import get_cache

bp = Blueprint("dashboard", __name__)


@bp.route("", methods=["GET"])
@login_required
def index():
    """Loan summary: library-wide for librarians, personal for members."""
    if current_user.is_librarian:
        return LibrarianDashboard(get_cache()).call()
    return MemberDashboard(get_cache()).call(current_user)
