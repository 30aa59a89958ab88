"""Terminal dashboard: record toggle, live transcript and the project list."""

import sys
import select
import logging
from typing import List, Optional

from pubsub import pub
from rich.console import Console
from rich.table import Table

from ..errors import EditorClosedError, PersistenceError, ProjectNotFoundError
from ..models.ui import CaptureStatus
from ..services.capture_controller import CaptureSessionController
from ..services.project_service import ProjectService
from ..transcription.publisher import STATE_TOPIC, TRANSCRIPT_TOPIC

logger = logging.getLogger(__name__)

HELP_TEXT = (
    "Commands:\n"
    "  [bold green]1[/bold green] - Start / stop recording\n"
    "  [bold blue]a[/bold blue] - Add project from transcript\n"
    "  [bold]l[/bold] - List projects\n"
    "  [bold]e N[/bold] - Edit project N\n"
    "  [bold yellow]d N [N...][/bold yellow] - Delete projects\n"
    "  [bold red]q[/bold red] - Quit"
)


class DashboardScreen:
    """Line-based terminal front end bound to the controller and project list."""

    def __init__(self,
                 controller: CaptureSessionController,
                 projects: ProjectService,
                 console: Optional[Console] = None):
        self.console = console or Console()
        self.controller = controller
        self.projects = projects
        self.status: CaptureStatus = controller.snapshot()
        self.transcript = controller.transcript
        self.running = False
        self._dirty = True

        pub.subscribe(self._on_transcript, TRANSCRIPT_TOPIC)
        pub.subscribe(self._on_status, STATE_TOPIC)

    def _on_transcript(self, text: str) -> None:
        self.transcript = text
        self._dirty = True

    def _on_status(self, status: CaptureStatus) -> None:
        self.status = status
        self._dirty = True

    def show_status(self) -> None:
        """Redraw the dashboard."""
        self.console.clear()
        self.console.print("Dash", style="bold blue")
        self.console.print("=" * 50)

        if self.status.is_listening:
            self.console.print("RECORDING", style="bold red")
        else:
            self.console.print("STOPPED", style="bold yellow")
        if self.status.status_message:
            self.console.print(self.status.status_message, style="red")

        self.console.print()
        self.console.print(self.transcript, style="italic")
        self.console.print()
        self.console.print(f"{len(self.projects)} project(s)")
        self.console.print("=" * 50)
        self.console.print(HELP_TEXT)
        self._dirty = False

    def show_projects(self) -> None:
        table = Table(title="Projects")
        table.add_column("#", justify="right")
        table.add_column("Title", style="bold")
        table.add_column("Details")
        table.add_column("Image")
        for index, project in enumerate(self.projects.projects, 1):
            details = project.details if len(project.details) <= 60 else project.details[:57] + "..."
            table.add_row(str(index), project.title, details, "yes" if project.has_image else "")
        self.console.print(table)

    def handle_command(self, line: str) -> bool:
        """Run one command line.

        Returns:
            False when the user asked to quit
        """
        parts = line.strip().split()
        if not parts:
            return True
        command, args = parts[0].lower(), parts[1:]

        if command == '1':
            self.controller.toggle()
        elif command == 'a':
            self._add()
        elif command == 'l':
            self.show_projects()
        elif command == 'e':
            self._edit(args)
        elif command == 'd':
            self._delete(args)
        elif command == 'q':
            return False
        else:
            self.console.print(f"Unknown command: {command}", style="red")
        self._dirty = True
        return True

    def _seed_text(self) -> str:
        """Transcript a new project starts from: the live one, else the last finished one."""
        if self.controller.is_listening:
            return self.controller.transcript
        return self.controller.last_transcript or self.controller.transcript

    def _add(self) -> None:
        try:
            project = self.projects.create_project(self._seed_text())
        except PersistenceError as e:
            self.console.print(f"Project added but not saved: {e}", style="red")
            return
        self.console.print(f"Added '{project.title}'", style="green")

    def _positions(self, args: List[str]) -> Optional[List[int]]:
        try:
            positions = [int(arg) - 1 for arg in args]
        except ValueError:
            self.console.print("Project numbers must be integers", style="red")
            return None
        if not positions or any(not 0 <= p < len(self.projects) for p in positions):
            self.console.print("No such project", style="red")
            return None
        return positions

    def _delete(self, args: List[str]) -> None:
        positions = self._positions(args)
        if positions is None:
            return
        try:
            removed = self.projects.delete_projects(positions)
        except PersistenceError as e:
            self.console.print(f"Projects deleted but not saved: {e}", style="red")
            return
        self.console.print(f"Deleted {len(removed)} project(s)", style="yellow")

    def _edit(self, args: List[str]) -> None:
        positions = self._positions(args[:1])
        if positions is None:
            return
        project_id = self.projects.projects[positions[0]].id
        editor = self.projects.edit_project(project_id)

        title = self.console.input(f"Title [{editor.staged.title}]: ").strip()
        if title:
            editor.set_title(title)
        details = self.console.input("Details (empty to keep): ").strip()
        if details:
            editor.set_details(details)
        image_path = self.console.input("Image file (empty to keep): ").strip()
        if image_path:
            try:
                editor.select_image(image_path)
            except OSError as e:
                self.console.print(f"Could not read image: {e}", style="red")

        if self.console.input("Save changes? [y/N]: ").strip().lower() == 'y':
            try:
                editor.save()
            except (ProjectNotFoundError, EditorClosedError, PersistenceError) as e:
                self.console.print(f"Could not save: {e}", style="red")
                return
            self.console.print("Saved", style="green")
        else:
            editor.discard()
            self.console.print("Changes discarded", style="yellow")

    def _get_user_input(self) -> Optional[str]:
        """Return a pending input line, without blocking."""
        if not select.select([sys.stdin], [], [], 0.0)[0]:
            return None
        line = sys.stdin.readline()
        if not line:
            self.running = False
            return None
        return line

    def run(self) -> None:
        """Run the dashboard until the user quits."""
        self.running = True
        self.controller.prepare()
        try:
            while self.running:
                self.controller.pump(timeout=0.2)
                if self._dirty:
                    self.show_status()
                line = self._get_user_input()
                if line is not None and not self.handle_command(line):
                    self.running = False
        except KeyboardInterrupt:
            self.running = False
        finally:
            self.cleanup()

    def cleanup(self) -> None:
        """Stop any capture and detach from the event topics."""
        self.running = False
        self.controller.shutdown()
        pub.unsubscribe(self._on_transcript, TRANSCRIPT_TOPIC)
        pub.unsubscribe(self._on_status, STATE_TOPIC)
        self.console.print("\nDash session ended", style="bold blue")
        logger.info("DashboardScreen cleanup completed")
