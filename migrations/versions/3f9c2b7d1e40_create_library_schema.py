"""Create users, books, book_copies and reservations

Revision ID: 3f9c2b7d1e40
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = '3f9c2b7d1e40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=120), nullable=False),
        sa.Column('password_hash', sa.String(length=256), nullable=True),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('birthdate', sa.Date(), nullable=False),
        sa.Column('address', sa.JSON().with_variant(postgresql.JSONB(), 'postgresql'), nullable=False),
        sa.Column('phone_number', sa.String(length=30), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='member'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.create_index('ix_users_email', ['email'], unique=True)
        batch_op.create_index('ix_users_role', ['role'], unique=False)

    op.create_table(
        'books',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('author', sa.String(length=255), nullable=False),
        sa.Column('publisher', sa.String(length=255), nullable=False),
        sa.Column('edition', sa.String(length=100), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('isbn', sa.String(length=20), nullable=True),
        sa.Column('genre', sa.String(length=100), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('books', schema=None) as batch_op:
        batch_op.create_index('ix_books_title', ['title'], unique=False)
        batch_op.create_index('ix_books_author', ['author'], unique=False)
        batch_op.create_index('ix_books_genre', ['genre'], unique=False)
        batch_op.create_index('ix_books_title_author', ['title', 'author'], unique=False)
        batch_op.create_index('ix_books_author_genre', ['author', 'genre'], unique=False)
        batch_op.create_index('ix_books_genre_year', ['genre', 'year'], unique=False)

    op.create_table(
        'book_copies',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('book_id', sa.Integer(), nullable=False),
        sa.Column('book_serial_number', sa.String(length=100), nullable=False),
        sa.Column('available', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['book_id'], ['books.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('book_copies', schema=None) as batch_op:
        batch_op.create_index('ix_book_copies_book_id', ['book_id'], unique=False)
        batch_op.create_index('ix_book_copies_book_serial_number', ['book_serial_number'], unique=True)
        batch_op.create_index('ix_book_copies_available', ['available'], unique=False)
        batch_op.create_index('ix_book_copies_book_available', ['book_id', 'available'], unique=False)

    op.create_table(
        'reservations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('book_copy_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('return_date', sa.Date(), nullable=False),
        sa.Column('returned_at', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['book_copy_id'], ['book_copies.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('reservations', schema=None) as batch_op:
        batch_op.create_index('ix_reservations_book_copy_id', ['book_copy_id'], unique=False)
        batch_op.create_index('ix_reservations_user_id', ['user_id'], unique=False)
        batch_op.create_index('ix_reservations_return_date', ['return_date'], unique=False)
        batch_op.create_index('ix_reservations_returned_at', ['returned_at'], unique=False)
        batch_op.create_index('ix_reservations_user_returned', ['user_id', 'returned_at'], unique=False)
        batch_op.create_index(
            'ix_reservations_return_date_returned', ['return_date', 'returned_at'], unique=False
        )
        # One active reservation per copy
        batch_op.create_index(
            'uq_reservations_active_copy',
            ['book_copy_id'],
            unique=True,
            postgresql_where=sa.text('returned_at IS NULL'),
            sqlite_where=sa.text('returned_at IS NULL'),
        )


def downgrade():
    op.drop_table('reservations')
    op.drop_table('book_copies')
    op.drop_table('books')
    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.drop_index('ix_users_role')
        batch_op.drop_index('ix_users_email')
    op.drop_table('users')
