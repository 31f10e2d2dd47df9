from typing import Any, Optional

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


def envelope(message: str, data: Optional[Any] = None) -> dict:
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json", by_alias=True)
    body = {"success": True, "message": message}
    if data is not None:
        body["data"] = data
    return body
