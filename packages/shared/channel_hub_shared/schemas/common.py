from enum import Enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class AccessRights(str, Enum):
    AUDIT = "Audit"
    READ = "Read"
    WRITE = "Write"
    READ_AND_WRITE = "ReadAndWrite"


class SubscriptionType(str, Enum):
    AUTHOR = "Author"
    SUBSCRIBER = "Subscriber"


class CamelModel(BaseModel):
    """Base for wire schemas: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorResponse(BaseModel):
    """Body of every error answer: {"error": "<message>"}."""
    error: str
