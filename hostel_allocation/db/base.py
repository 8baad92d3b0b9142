"""SQLAlchemy Base class with every model registered."""

from hostel_allocation.models import Base  # noqa: F401


def import_models():
    """Import all models to register them with SQLAlchemy."""
    import hostel_allocation.models  # noqa: F401

    return Base
