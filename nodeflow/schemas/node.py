"""Node catalog schemas."""

from typing import Any

from pydantic import BaseModel


class NodeTypeSchema(BaseModel):
    """Catalog entry for one node kind."""

    kind: str
    display_name: str
    description: str
    category: str
    icon: str | None = None
    aliases: list[str] = []
    outputs: list[str] = ["main"]
    properties: list[dict[str, Any]] = []
