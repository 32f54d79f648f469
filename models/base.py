"""
Base schemas for all models.

Field names are snake_case in Python and camelCase on the wire, matching
the JSON documents vendors and the mapping editor exchange.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseSchema(BaseModel):
    """
    Base for all schemas.

    Features:
        - Auto-trim whitespace from strings
        - Validate on attribute assignment
        - camelCase aliases, snake_case accepted on input
    """
    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
        validate_assignment=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_json_dict(self) -> dict:
        """Serialize for persistence and API responses (camelCase, JSON types)."""
        return self.model_dump(mode="json", by_alias=True)
