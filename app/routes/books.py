from flask import Blueprint
from flask_login import login_required

from app.models import Book, librarian_required
from app.services.catalog import BookService
from app.utils import filter_params, page_params, pagination_meta, resource_params

bp = Blueprint("books", __name__)


@bp.route("", methods=["GET"])
@login_required
def index():
    """List books, filtered by title, author or genre."""
    filters = filter_params(*Book.FILTER_FIELDS)
    page, per_page = page_params()
    books = BookService.list(filters, page=page, per_page=per_page)
    return {
        "books": [book.to_dict() for book in books.items],
        "meta": pagination_meta(books),
        "filters": filters,
    }


@bp.route("/<int:id>", methods=["GET"])
@login_required
def show(id):
    book = BookService.get(id)
    return {"book": book.to_dict(with_copies=True)}


@bp.route("", methods=["POST"])
@login_required
@librarian_required
def create():
    book = BookService.create(resource_params("book"))
    return {"book": book.to_dict(), "message": "Book created successfully"}, 201


@bp.route("/<int:id>", methods=["PUT", "PATCH"])
@login_required
@librarian_required
def update(id):
    book = BookService.update(BookService.get(id), resource_params("book"))
    return {"book": book.to_dict(), "message": "Book updated successfully"}


@bp.route("/<int:id>", methods=["DELETE"])
@login_required
@librarian_required
def destroy(id):
    BookService.delete(BookService.get(id))
    return {"message": "Book deleted successfully"}
