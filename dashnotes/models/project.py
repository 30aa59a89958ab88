"""Project data model: a titled note seeded from a transcript."""

import base64
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

DEFAULT_PROJECT_TITLE = "New Project"


@dataclass
class Project:
    """A user-created record pairing a title, text details and an optional image.

    Equality compares every field and is meant for change detection only;
    use ``id`` to decide whether two values refer to the same project.
    """
    title: str
    details: str
    image_data: Optional[bytes] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "id" and "id" in self.__dict__:
            raise AttributeError("Project id is immutable")
        super().__setattr__(name, value)

    @property
    def has_image(self) -> bool:
        return self.image_data is not None

    def with_image_file(self, image_path: str) -> "Project":
        """Attach the raw bytes of an image file, stored as-is."""
        self.image_data = Path(image_path).read_bytes()
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serialisable dict."""
        return {
            "id": self.id,
            "title": self.title,
            "details": self.details,
            "image_data": base64.b64encode(self.image_data).decode("ascii") if self.image_data is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Project":
        image = data.get("image_data")
        return cls(
            id=str(data["id"]),
            title=data.get("title", ""),
            details=data.get("details", ""),
            image_data=base64.b64decode(image) if image is not None else None,
        )
