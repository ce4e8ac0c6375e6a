"""Base model for status document structures.

Every model in :mod:`spacestatus.models` inherits from
:class:`StatusBaseModel` which provides:

* ``validate_assignment`` so mutators can update a working copy in place
  without bypassing type coercion.
* ``extra="ignore"`` so documents produced by newer schema revisions still
  load.
* :meth:`StatusBaseModel.to_wire` / :meth:`StatusBaseModel.to_json_bytes`,
  the only serialisation used on the wire and over HTTP (``None`` fields
  are omitted, matching the upstream schema where absent means unknown).
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class StatusBaseModel(BaseModel):
    """Base for status document models."""

    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        validate_assignment=True,
    )

    def to_wire(self) -> dict[str, Any]:
        """JSON-compatible dict with unknown (``None``) fields dropped."""
        return self.model_dump(mode="json", exclude_none=True)

    def to_json_bytes(self) -> bytes:
        """UTF-8 JSON encoding of :meth:`to_wire`."""
        return self.model_dump_json(exclude_none=True).encode("utf-8")
