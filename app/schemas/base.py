# app/schemas/base.py
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class APIModel(BaseModel):
    """
    Base for request/response bodies.

    The wire format is camelCase (likeCount, adminId, ...) while Python
    code and table columns stay snake_case. populate_by_name lets the
    ORM rows (snake_case attributes) validate straight into these models.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MessageResponse(APIModel):
    """Status-only reply, e.g. after a delete."""

    message: str
