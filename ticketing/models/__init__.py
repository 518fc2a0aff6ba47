# ticketing/models/__init__.py
# Import all models here so SQLAlchemy registers them into Base.metadata.

from ticketing.models.ticket import Ticket  # noqa: F401
