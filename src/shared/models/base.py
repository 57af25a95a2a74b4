"""Base model configuration for all Pydantic models."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict


class AnalyzerBaseModel(BaseModel):
    """Base model with common configuration.

    Conventions:
    - Timestamps are timezone-aware (UTC)
    - Resource magnitudes are exact ``Decimal`` values, never floats
    - Field names are lowercase snake_case
    """

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        use_enum_values=False,
        json_encoders={
            datetime: lambda v: v.isoformat(),
            Decimal: lambda v: str(v),
        },
    )
