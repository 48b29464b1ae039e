from dataclasses import dataclass, field
from typing import Any, Dict, Optional

# lease states understood by the leasing service
FREE = "free"
BUSY = "busy"
DIRTY = "dirty"
CLEANING = "cleaning"


@dataclass
class Resource:
    """A named resource leased from the pool, e.g. a GCP project."""

    name: str
    type: str
    state: str = FREE
    owner: str = ""
    last_update: Optional[str] = None
    user_data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Resource":
        if not isinstance(d, dict):
            raise ValueError(f"Resource is not a JSON object: {d!r}")
        if not d.get("name"):
            raise ValueError(f"Resource has no name: {d}")
        return cls(
            name=d["name"],
            type=d.get("type", ""),
            state=d.get("state", FREE),
            owner=d.get("owner", ""),
            last_update=d.get("lastupdate"),
            user_data=d.get("userdata") or {},
        )

    def get_name(self) -> str:
        return self.name

    def __str__(self):
        return f"{self.type}/{self.name} ({self.state})"
