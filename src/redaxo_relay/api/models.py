"""Data models for the Redaxo backend.

Scraped records are Pydantic models; the request envelope is a plain
dataclass because it carries the parsed BeautifulSoup document.
"""

from dataclasses import dataclass, field
from enum import Enum

from bs4 import BeautifulSoup
from pydantic import BaseModel, ConfigDict, Field


class LoginStatus(str, Enum):
    """Login status as derived from the backend's pages.

    The values are what ends up in the session store.
    """

    UNKNOWN = "unknown"
    LOGGED_IN = "logged-in"
    LOGGED_OUT = "logged-out"

    @classmethod
    def is_valid(cls, value: object) -> bool:
        """Check whether a persisted value names a status."""
        return value in {status.value for status in cls}


class RedaxoModel(BaseModel):
    """Base model with common configuration.

    - populate_by_name: Allow both alias and field name in input
    - extra="ignore": Ignore unknown fields
    """

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
    )


class ArticleRecord(RedaxoModel):
    """One row of an article listing."""

    article_id: int = Field(alias="articleId")
    category_id: int | None = Field(default=None, alias="categoryId")
    article_name: str | None = Field(default=None, alias="articleName")
    priority: int | None = None
    template_name: str | None = Field(default=None, alias="templateName")


class Category(RedaxoModel):
    """A category of the structure tree, flattened with parent/child links."""

    id: int
    name: str | None = None
    parent_id: int = Field(default=-1, alias="parentId")
    level: int = 0
    children: list[int] = Field(default_factory=list)


class Template(RedaxoModel):
    """A page template."""

    id: int
    name: str | None = None
    active: bool = False


class Module(RedaxoModel):
    """A content module (the blueprint of an article block)."""

    id: int
    name: str | None = None
    active: bool = False


@dataclass
class Credentials:
    """Login credentials of the current portal user. Never persisted."""

    user_id: str
    password: str = field(repr=False)


@dataclass
class Envelope:
    """Result of a successful request to the backend."""

    request: str
    status_code: int
    response_headers: list[tuple[str, str]]
    content: str
    document: BeautifulSoup = field(repr=False)

    @classmethod
    def from_content(
        cls,
        request: str,
        content: str,
        status_code: int = 200,
        response_headers: list[tuple[str, str]] | None = None,
    ) -> "Envelope":
        """Wrap already fetched HTML, parsing it once."""
        return cls(
            request=request,
            status_code=status_code,
            response_headers=response_headers or [],
            content=content,
            document=BeautifulSoup(content, "html.parser"),
        )
