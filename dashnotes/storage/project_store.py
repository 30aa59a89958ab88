"""Keyed JSON persistence of the project list."""

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import List

from ..errors import PersistenceError
from ..models.project import Project

logger = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class ProjectStore:
    """Stores one JSON document per key under ``<data_dir>/projects``."""

    def __init__(self, data_dir: str = "./data"):
        """Initialize project store with data directory.

        Args:
            data_dir: Base directory for storing all data
        """
        self.data_dir = Path(data_dir)
        self.projects_dir = self.data_dir / "projects"
        self.projects_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"ProjectStore initialized with data_dir: {self.data_dir}")

    def path_for(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.projects_dir / f"{key}.json"

    def load(self, key: str) -> List[Project]:
        """Load the project list stored under ``key``.

        Missing or unreadable documents load as an empty list.
        """
        path = self.path_for(key)
        if not path.exists():
            logger.debug(f"No stored projects at {path}")
            return []

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            projects = [Project.from_dict(item) for item in data["projects"]]
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Could not load projects from {path}: {e}")
            return []

        logger.info(f"Loaded {len(projects)} projects from {path}")
        return projects

    def save(self, key: str, projects: List[Project]) -> None:
        """Replace the document stored under ``key``.

        The write goes to a temporary file first, so a failed save leaves the
        previous document intact.

        Raises:
            PersistenceError: if the document could not be written
        """
        path = self.path_for(key)
        document = {"version": 1, "projects": [project.to_dict() for project in projects]}

        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self.projects_dir, prefix=f".{key}.", suffix=".tmp")
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(document, f, indent=2, ensure_ascii=False)
            os.replace(tmp_name, path)
        except (OSError, TypeError, ValueError) as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise PersistenceError(f"Could not save projects to {path}: {e}") from e

        logger.debug(f"Saved {len(projects)} projects to {path}")
