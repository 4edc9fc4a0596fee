"""Project directory preparation and template fetching.

The template is a git repository cloned shallowly from a trusted host.  Its
git metadata is dropped, a fresh repository is initialised, and the tree is
checked for the files configuration synthesis relies on before anything
else runs.
"""

from __future__ import annotations

import asyncio
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

from launchkit.errors import DirectoryConflictError, LaunchkitError, TemplateStructureError
from launchkit.prompts import Prompter
from launchkit.runner import ToolRunner
from launchkit.utils import create_progress, print_debug, print_warning, validate_project_name

TRUSTED_TEMPLATE_HOSTS = ("github.com", "gitlab.com", "bitbucket.org")
REQUIRED_TEMPLATE_PATHS = ("package.json", "server/package.json", "ui/package.json")
CURRENT_DIRECTORY = "."


@dataclass
class ProjectTarget:
    """Where a new project will live and whether this run created it."""

    name: str
    directory: Path
    created: bool = False
    in_place: bool = False


def resolve_target(project_name: str, cwd: Path | None = None) -> ProjectTarget:
    """Turn a positional project name into a target directory.

    ``"."`` scaffolds into *cwd* and takes the project name from it.

    Raises:
        LaunchkitError: The derived name is not a valid project name.
    """
    cwd = Path(cwd or Path.cwd())
    if project_name == CURRENT_DIRECTORY:
        name, directory, in_place = cwd.resolve().name, cwd, True
    else:
        name, directory, in_place = project_name, cwd / project_name, False

    problem = validate_project_name(name)
    if problem:
        raise LaunchkitError(
            f"Invalid project name '{name}': {problem}",
            ["Use lowercase letters, digits and hyphens, e.g. `my-app`"],
        )
    return ProjectTarget(name=name, directory=directory, in_place=in_place)


async def prepare_directory(target: ProjectTarget, prompter: Prompter, fast: bool = False) -> None:
    """Make sure *target* is ready to receive the template.

    An existing, non-empty directory needs explicit consent and is then
    cleared.  Scaffolding in place only requires the directory to be empty
    apart from hidden files.

    Raises:
        DirectoryConflictError: The user kept the existing directory.
    """
    directory = target.directory
    if not directory.exists():
        directory.mkdir(parents=True)
        target.created = True
        return

    entries = [p for p in directory.iterdir() if not (target.in_place and p.name.startswith("."))]
    if not entries:
        return

    if target.in_place:
        raise DirectoryConflictError(
            f"Current directory {directory} is not empty",
            ["Run the command in an empty directory, or pass a new project name"],
        )

    overwrite = not fast and await prompter.confirm(
        f"Directory {directory.name} already exists. Overwrite it?", default=False
    )
    if not overwrite:
        raise DirectoryConflictError(
            f"Directory {directory} already exists",
            ["Choose a different project name", f"Or remove {directory} and try again"],
        )
    await asyncio.to_thread(shutil.rmtree, directory)
    directory.mkdir(parents=True)
    target.created = True


def is_trusted_template_url(url: str) -> bool:
    host = (urlparse(url).hostname or "").lower()
    return any(host == trusted or host.endswith(f".{trusted}") for trusted in TRUSTED_TEMPLATE_HOSTS)


def missing_template_paths(directory: Path) -> list[str]:
    return [path for path in REQUIRED_TEMPLATE_PATHS if not (directory / path).exists()]


class TemplateFetcher:
    """Clones the starter template into a prepared directory."""

    def __init__(self, runner: ToolRunner, timeout: float = 120.0) -> None:
        self.runner = runner
        self.timeout = timeout

    async def fetch(self, url: str, target: Path, branch: str | None = None) -> None:
        """Clone *url* at *branch* and move the tree into *target*.

        The clone lands in a staging directory beside *target* and is only
        moved in once it has been validated, so files already in *target*
        (such as a ``.git`` or ``.env`` when scaffolding in place) are never
        touched by a failed fetch.  Entries *target* already holds win over
        the template's.

        Raises:
            LaunchkitError: The URL is untrusted or ``git clone`` failed.
            TemplateStructureError: Required template files are missing.
        """
        if not is_trusted_template_url(url):
            raise LaunchkitError(
                f"Untrusted template URL: {url}",
                [f"Templates may only come from {', '.join(TRUSTED_TEMPLATE_HOSTS)}"],
            )

        staging = Path(tempfile.mkdtemp(prefix=".launchkit-", dir=target.resolve().parent))
        clone_dir = staging / "template"
        argv = ["git", "clone", "--depth", "1"]
        if branch:
            argv += ["--branch", branch]
        argv += [url, str(clone_dir)]

        try:
            with create_progress() as progress:
                progress.add_task(f"Downloading template from {url}...", total=None)
                result = await self.runner.exec(argv, timeout=self.timeout)
            if not result.ok:
                raise LaunchkitError(
                    "Failed to download the project template",
                    [
                        result.stderr or result.stdout or f"git exited with {result.returncode}",
                        "Check your connection and that the template URL and branch exist",
                    ],
                )

            missing = missing_template_paths(clone_dir)
            if missing:
                raise TemplateStructureError(
                    "The downloaded template is missing required files: " + ", ".join(missing),
                    ["Check the --template URL and --branch", "Or use the default template"],
                )

            await asyncio.to_thread(shutil.rmtree, clone_dir / ".git", True)
            await asyncio.to_thread(merge_tree, clone_dir, target)
        finally:
            await asyncio.to_thread(shutil.rmtree, staging, True)

        await self._init_repository(target)

    async def _init_repository(self, target: Path) -> None:
        for argv in (
            ["git", "init"],
            ["git", "add", "."],
            ["git", "commit", "-m", "Initial commit from create-launchkit-app"],
        ):
            result = await self.runner.exec(argv, cwd=target, timeout=60)
            if not result.ok:
                print_warning("Could not create the initial git commit; continuing without it.")
                print_debug(result.stderr)
                return


def merge_tree(source: Path, target: Path) -> None:
    """Move every entry of *source* into *target*, keeping existing entries."""
    target.mkdir(parents=True, exist_ok=True)
    for entry in source.iterdir():
        destination = target / entry.name
        if destination.exists() or destination.is_symlink():
            print_debug(f"Keeping existing {destination}")
            continue
        shutil.move(str(entry), str(destination))
