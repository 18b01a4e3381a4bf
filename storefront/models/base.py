"""Base model and shared field types for stored documents"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated, Any, Dict

from pydantic import BaseModel, BeforeValidator, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel


def _to_decimal(value: Any) -> Any:
    # Stored documents carry floats; go through str to avoid binary artifacts
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, int) and not isinstance(value, bool):
        return Decimal(value)
    return value


# Decimal in memory, float in stored documents
Money = Annotated[
    Decimal,
    BeforeValidator(_to_decimal),
    PlainSerializer(lambda v: float(v), return_type=float, when_used="json"),
]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StorefrontModel(BaseModel):
    """Base model with camelCase document aliases"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_document(self, **kwargs) -> Dict[str, Any]:
        """Serialize into the stored (camelCase, JSON-safe) shape"""
        return self.model_dump(mode="json", by_alias=True, **kwargs)

    @classmethod
    def from_document(cls, data: Dict[str, Any], **extra):
        return cls.model_validate({**data, **extra})
