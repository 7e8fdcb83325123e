from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Any, Optional


class CamelModel(BaseModel):
    """Model serialized with camelCase keys at the API boundary."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


def envelope(data: Any = None, message: Optional[str] = None) -> dict:
    """Wrap a payload in the ``{success, data, message}`` envelope."""
    if isinstance(data, CamelModel):
        data = data.to_json()
    body = {"success": True, "data": data}
    if message:
        body["message"] = message
    return body
