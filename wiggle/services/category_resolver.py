"""Category Resolver - maps a category name to a stable id."""

import logging

from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from wiggle.core.errors import store_write
from wiggle.database import session_factory
from wiggle.models import Category

logger = logging.getLogger(__name__)


def _lookup(session, name: str) -> int | None:
    # Category.name uses NOCASE collation, so this matches case variants
    return session.execute(select(Category.id).where(Category.name == name)).scalar_one_or_none()


@store_write("Could not resolve category")
def resolve_category(name: str) -> int:
    """Return the id for a category name, creating the category on first sight.

    The UI may be reading categories while the worker resolves one. If the
    other side inserted the same name between our lookup and insert, the
    unique constraint rejects ours and we return theirs.
    """
    name = name.strip()
    with session_factory() as session:
        category_id = _lookup(session, name)
        if category_id is not None:
            return category_id

        category = Category(name=name)
        session.add(category)
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            category_id = _lookup(session, name)
            if category_id is None:
                raise
            logger.debug(f"Category {name!r} was created concurrently, using id {category_id}")
            return category_id

        logger.info(f"New category {name!r} (id {category.id})")
        return category.id
