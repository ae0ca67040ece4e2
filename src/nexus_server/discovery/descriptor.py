"""Per-directory domain descriptors.

Each directory of a library tree may carry a small JSON file::

    {"isDomain": true, "hasNestedDomains": true, "domains": ["national", "international"]}

``isDomain`` marks a directory whose source files declare operations;
``hasNestedDomains`` + ``domains`` name the child directories to descend into,
in order. The child names double as namespace segments.
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..errors import DescriptorInvalid, DescriptorMissing

DEFAULT_DESCRIPTOR_NAME = "nexus.json"


class DomainDescriptor(BaseModel):
    """Immutable view of one descriptor file."""

    is_domain: bool = Field(default=False, alias="isDomain")
    has_nested_domains: bool = Field(default=False, alias="hasNestedDomains")
    domains: list[str] = Field(default_factory=list)

    model_config = {
        "populate_by_name": True,
        "frozen": True,
        "extra": "ignore",
        "strict": True,
    }

    @field_validator("domains")
    @classmethod
    def validate_segments(cls, v: list[str]) -> list[str]:
        for name in v:
            if not name or name in (".", "..") or any(c in name for c in "/\\."):
                raise ValueError(f"invalid domain name: {name!r}")
        return v

    @property
    def children(self) -> list[str]:
        """Child directories to recurse into (empty unless nesting is declared)."""
        return list(self.domains) if self.has_nested_domains else []

    @property
    def is_inert(self) -> bool:
        return not self.is_domain and not self.has_nested_domains


def read_descriptor(
    directory: Path, filename: str = DEFAULT_DESCRIPTOR_NAME
) -> DomainDescriptor:
    """Load the descriptor of *directory*.

    Raises :class:`DescriptorMissing` when there is no file and
    :class:`DescriptorInvalid` when it cannot be decoded or validated.
    """
    path = directory / filename
    if not path.is_file():
        raise DescriptorMissing(str(path))
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DescriptorInvalid(str(path), str(e)) from e
    if not isinstance(raw, dict):
        raise DescriptorInvalid(str(path), "descriptor must be a JSON object")
    try:
        return DomainDescriptor.model_validate(raw)
    except ValidationError as e:
        raise DescriptorInvalid(str(path), str(e)) from e
