import re
from sqlalchemy import BigInteger, Integer
from sqlalchemy.orm import DeclarativeBase, declared_attr

# sqlite only auto-increments INTEGER PRIMARY KEY columns
BigIntId = BigInteger().with_variant(Integer(), "sqlite")


class Base(DeclarativeBase):
    """Base class for all models."""

    @declared_attr.directive
    def __tablename__(cls) -> str:
        """Get the table name for the model: ShowRoom -> show_room."""
        return re.sub(r"(?<!^)(?=[A-Z])", "_", cls.__name__).lower()
