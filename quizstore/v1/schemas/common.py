from pydantic import BaseModel
from typing import Optional, Union


# Atomic number update, e.g. {"increment": 5} compiles to "stars = stars + 5"
class IntOperation(BaseModel):
    set: Optional[int] = None
    increment: Optional[int] = None
    decrement: Optional[int] = None
    multiply: Optional[int] = None
    divide: Optional[int] = None

    class Config:
        extra = "forbid"


IntUpdate = Union[int, IntOperation]


class CreateSchema(BaseModel):
    class Config:
        extra = "forbid"
        str_strip_whitespace = True


class UpdateSchema(BaseModel):
    class Config:
        extra = "forbid"
        str_strip_whitespace = True
