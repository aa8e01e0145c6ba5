from flask import Blueprint
from flask_login import login_required

from app.models import librarian_required
from app.services.catalog import BookService, BookCopyService
from app.utils import filter_params, page_params, pagination_meta, resource_params

bp = Blueprint("book_copies", __name__)


@bp.route("/books/<int:book_id>/book_copies", methods=["GET"])
@login_required
def index(book_id):
    """List the copies of a book."""
    book = BookService.get(book_id)
    filters = filter_params("book_serial_number", "available")
    page, per_page = page_params()
    copies = BookCopyService.list(book, filters, page=page, per_page=per_page)
    return {
        "book_copies": [copy.to_dict() for copy in copies.items],
        "meta": pagination_meta(copies),
        "book": {"id": book.id, "title": book.title, "author": book.author},
        "filters": filters,
    }


@bp.route("/book_copies/<int:id>", methods=["GET"])
@login_required
def show(id):
    book_copy = BookCopyService.get(id)
    return {"book_copy": book_copy.to_dict(with_book=True)}


@bp.route("/books/<int:book_id>/book_copies", methods=["POST"])
@login_required
@librarian_required
def create(book_id):
    book = BookService.get(book_id)
    book_copy = BookCopyService.create(book, resource_params("book_copy"))
    return {"book_copy": book_copy.to_dict(), "message": "Book copy created successfully"}, 201


@bp.route("/books/<int:book_id>/book_copies/<int:id>", methods=["PUT", "PATCH"])
@login_required
@librarian_required
def update(book_id, id):
    book_copy = BookCopyService.get(id, book_id=book_id)
    book_copy = BookCopyService.update(book_copy, resource_params("book_copy"))
    return {"book_copy": book_copy.to_dict(), "message": "Book copy updated successfully"}


@bp.route("/books/<int:book_id>/book_copies/<int:id>", methods=["DELETE"])
@login_required
@librarian_required
def destroy(book_id, id):
    BookCopyService.delete(BookCopyService.get(id, book_id=book_id))
    return {"message": "Book copy deleted successfully"}
