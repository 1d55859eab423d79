"""Common schemas for the API."""

import typing as t

from ninja import Schema
from pydantic import StringConstraints

StrippedString = t.Annotated[str, StringConstraints(strip_whitespace=True)]


class VersionResponse(Schema):
    version: str


class ResponseOk(Schema):
    success: t.Literal[True] = True


class ResponseMessage(ResponseOk):
    message: str
