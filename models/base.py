import uuid

from sqlalchemy.orm import declarative_base

Base = declarative_base()


def generate_id(prefix: str) -> str:
    """Platform-style string identifier, e.g. ``cart_3f2a...``."""
    return f"{prefix}_{uuid.uuid4().hex[:26]}"
