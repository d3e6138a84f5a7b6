"""Base model classes for the Interview Practice core."""

from pydantic import BaseModel as PydanticBaseModel


class BaseModel(PydanticBaseModel):
    """Base model with common functionality."""

    class Config:
        """Pydantic configuration."""
        use_enum_values = False
        validate_assignment = True


class FrozenModel(PydanticBaseModel):
    """Base model for values that never change once produced."""

    class Config:
        """Pydantic configuration."""
        use_enum_values = False
        frozen = True
