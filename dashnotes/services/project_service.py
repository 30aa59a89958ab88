"""Project service: owns the project list and mirrors it to storage."""

import dataclasses
import logging
from typing import Iterable, List, Optional

from ..errors import EditorClosedError, PersistenceError, ProjectNotFoundError
from ..models.project import DEFAULT_PROJECT_TITLE, Project
from ..storage.project_store import ProjectStore
from .capture_controller import CaptureSessionController

logger = logging.getLogger(__name__)


class ProjectService:
    """Create, edit and delete projects.

    The in-memory list is the source of truth. Every mutation is mirrored to
    the store; what happens when that write fails is decided by
    ``write_failure_policy``:

    * ``ignore`` - drop the failure silently
    * ``warn`` - log it and carry on
    * ``raise`` - propagate ``PersistenceError`` to the caller
    """

    def __init__(self,
                 store: ProjectStore,
                 controller: Optional[CaptureSessionController] = None,
                 key: str = "projects",
                 write_failure_policy: str = "warn"):
        self.store = store
        self.controller = controller
        self.key = key
        self.write_failure_policy = write_failure_policy
        self._projects: List[Project] = []
        logger.info(f"ProjectService initialized (key={key}, write_failure_policy={write_failure_policy})")

    @property
    def projects(self) -> List[Project]:
        """Copies of the stored projects, in list order."""
        return [dataclasses.replace(project) for project in self._projects]

    def __len__(self) -> int:
        return len(self._projects)

    def load(self) -> List[Project]:
        """Replace the in-memory list with what the store holds."""
        self._projects = self.store.load(self.key)
        return self.projects

    def get_project(self, project_id: str) -> Project:
        return dataclasses.replace(self._projects[self._index_of(project_id)])

    def create_project(self, from_text: str) -> Project:
        """Append a new project whose details are ``from_text``.

        The capture transcript is reset to its initial prompt.
        """
        project = Project(title=DEFAULT_PROJECT_TITLE, details=from_text)
        self._projects.append(project)
        logger.info(f"Created project {project.id} ({len(from_text)} chars)")
        if self.controller is not None:
            self.controller.reset_transcript()
        self._persist()
        return dataclasses.replace(project)

    def edit_project(self, project_id: str) -> "ProjectEditor":
        """Open an editor holding a staged copy of the project."""
        return ProjectEditor(self, self._projects[self._index_of(project_id)])

    def delete_projects(self, positions: Iterable[int]) -> List[Project]:
        """Remove the projects at the given list positions.

        Returns:
            The removed projects
        """
        offsets = sorted(set(positions), reverse=True)
        for offset in offsets:
            if not 0 <= offset < len(self._projects):
                raise IndexError(f"No project at position {offset}")

        removed = [self._projects.pop(offset) for offset in offsets]
        removed.reverse()
        logger.info(f"Deleted {len(removed)} projects")
        self._persist()
        return removed

    def _commit(self, staged: Project) -> None:
        index = self._index_of(staged.id)
        self._projects[index] = dataclasses.replace(staged)
        logger.info(f"Saved edits to project {staged.id}")
        self._persist()

    def _index_of(self, project_id: str) -> int:
        for index, project in enumerate(self._projects):
            if project.id == project_id:
                return index
        raise ProjectNotFoundError(project_id)

    def _persist(self) -> None:
        try:
            self.store.save(self.key, self._projects)
        except PersistenceError as e:
            if self.write_failure_policy == "raise":
                raise
            if self.write_failure_policy == "warn":
                logger.warning(f"Project list not persisted: {e}")
            else:
                logger.debug(f"Project list not persisted: {e}")


class ProjectEditor:
    """Staged edits to one project. Nothing reaches the list until ``save()``."""

    def __init__(self, service: ProjectService, project: Project):
        self._service = service
        self.original = dataclasses.replace(project)
        self.staged = dataclasses.replace(project)
        self.is_open = True

    def _check_open(self) -> None:
        if not self.is_open:
            raise EditorClosedError(f"Editor for project {self.staged.id} is closed")

    def set_title(self, title: str) -> None:
        self._check_open()
        self.staged.title = title

    def set_details(self, details: str) -> None:
        self._check_open()
        self.staged.details = details

    def set_image(self, image_data: Optional[bytes]) -> None:
        self._check_open()
        self.staged.image_data = image_data

    def select_image(self, image_path: str) -> None:
        """Stage the bytes of an image file as the project image."""
        self._check_open()
        self.staged.with_image_file(image_path)

    @property
    def has_changes(self) -> bool:
        return self.staged != self.original

    def save(self) -> Project:
        """Commit the staged copy and close the editor."""
        self._check_open()
        self._service._commit(self.staged)
        self.is_open = False
        return dataclasses.replace(self.staged)

    def discard(self) -> None:
        """Close the editor without touching the stored project."""
        self.is_open = False
