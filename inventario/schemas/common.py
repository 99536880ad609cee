# inventario/schemas/common.py
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


# Base configuration: ORM compatible, camelCase on the wire, snake_case in Python
class ORMBase(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


# Simple acknowledgement returned by deletes and state changes
class MessageResponse(ORMBase):
    success: bool = True
    message: str
