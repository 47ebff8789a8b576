"""Document Schemas - the info object of a generated description document."""

from pydantic import BaseModel, Field


class Contact(BaseModel):
    name: str | None = None
    url: str | None = None
    email: str | None = None


class License(BaseModel):
    name: str
    identifier: str | None = None
    url: str | None = None


class Info(BaseModel):
    """OpenAPI info object; None fields are left out of the document."""
    title: str = Field(min_length=1)
    version: str = Field(min_length=1)
    summary: str | None = None
    description: str | None = None
    terms_of_service: str | None = Field(None, serialization_alias="termsOfService")
    contact: Contact | None = None
    license: License | None = None
