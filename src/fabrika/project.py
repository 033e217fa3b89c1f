"""Project directory layout.

A project keeps all fabrika state in ``<project>/.fabrika``: the config
file, the lock file and the directories named in ``[paths]``.
"""

from dataclasses import dataclass
from pathlib import Path

from .config import FabrikaConfig, load_config, write_config_template
from .constants import FABRIKA_DIR_NAME
from .errors import ConfigError


class NotInitialized(ConfigError):
    """Project has no .fabrika directory."""


def get_fabrika_dir(project_path: Path) -> Path:
    return project_path / FABRIKA_DIR_NAME


@dataclass(frozen=True)
class Project:
    """A project root with its loaded configuration."""

    path: Path
    config: FabrikaConfig

    @property
    def fabrika_dir(self) -> Path:
        return get_fabrika_dir(self.path)

    @property
    def checkpoints_dir(self) -> Path:
        return self.fabrika_dir / self.config.paths.checkpoints

    @property
    def outputs_dir(self) -> Path:
        return self.fabrika_dir / self.config.paths.outputs

    @property
    def templates_dir(self) -> Path:
        return self.fabrika_dir / self.config.paths.templates

    @property
    def logs_dir(self) -> Path:
        return self.fabrika_dir / self.config.paths.logs


def open_project(project_path: Path) -> Project:
    """Load an initialized project.

    Raises:
        NotInitialized: If ``.fabrika`` does not exist
        ConfigError: If config.toml is invalid
    """
    fabrika_dir = get_fabrika_dir(project_path)
    if not fabrika_dir.is_dir():
        raise NotInitialized(
            f"{fabrika_dir} not found",
            "Proje başlatılmamış. Önce 'fabrika init' çalıştırın.",
        )
    return Project(path=project_path, config=load_config(fabrika_dir))


def init_project(project_path: Path) -> tuple[Project, bool]:
    """Create the .fabrika layout, writing a config template if missing.

    Returns:
        The project and whether a new config file was written
    """
    fabrika_dir = get_fabrika_dir(project_path)
    fabrika_dir.mkdir(parents=True, exist_ok=True)

    created = not (fabrika_dir / "config.toml").exists()
    if created:
        write_config_template(fabrika_dir)

    project = Project(path=project_path, config=load_config(fabrika_dir))
    for directory in (
        project.checkpoints_dir,
        project.outputs_dir,
        project.templates_dir,
        project.logs_dir,
    ):
        directory.mkdir(parents=True, exist_ok=True)
    return project, created
