from .users import User  # noqa: F401
from .user_roles import UserRole  # noqa: F401
from .orders import Order  # noqa: F401
from .cpl_mapping import ContentCplMapping  # noqa: F401
from .distributors import Distributor  # noqa: F401

# Import the declarative base
from app.db.base import Base  # noqa: F401

# Alembic's env and the test fixtures import this package so that every
# table above is registered on Base.metadata.
