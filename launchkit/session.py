"""Session-scoped cache of tool locations and authentication results.

One ``ToolSession`` lives for a whole run and is handed to every checker,
installer and workflow.  Lookups are computed once and reused; anything that
changes the machine (an install, a login) must call ``invalidate`` or
``invalidate_auth`` so the next check sees the new state.
"""

from __future__ import annotations

import shutil
from pathlib import Path


class ToolSession:
    """Caches tool path resolution and auth probes for one run."""

    def __init__(self, project_dir: str | Path | None = None) -> None:
        self.project_dir = Path(project_dir) if project_dir else Path.cwd()
        # Directories whose node_modules/.bin is searched, newest first.
        self.install_roots: list[Path] = [self.project_dir]
        self._global_paths: dict[str, str | None] = {}
        self._local_paths: dict[str, str | None] = {}
        self._auth: dict[str, bool] = {}

    # -- Tool paths --------------------------------------------------------

    def global_path(self, command: str) -> str | None:
        """Return the tool's location on ``PATH``, or ``None``."""
        if command not in self._global_paths:
            self._global_paths[command] = shutil.which(command)
        return self._global_paths[command]

    def local_path(self, command: str) -> str | None:
        """Return a ``node_modules/.bin`` shim from any install root, or ``None``."""
        if command not in self._local_paths:
            self._local_paths[command] = None
            for root in self.install_roots:
                candidate = root / "node_modules" / ".bin" / command
                if candidate.exists():
                    self._local_paths[command] = str(candidate)
                    break
        return self._local_paths[command]

    def resolve(self, command: str) -> list[str]:
        """Return the argv prefix that runs *command*.

        Global install first, then a local shim, then ``npx`` as the last
        resort.
        """
        path = self.global_path(command) or self.local_path(command)
        if path:
            return [path]
        return ["npx", command]

    def move_to(self, project_dir: str | Path) -> None:
        """Point the session at a different project directory.

        Tools installed locally before the move stay resolvable; the new
        directory's shims take precedence.
        """
        self.project_dir = Path(project_dir)
        self.install_roots = [
            self.project_dir,
            *(root for root in self.install_roots if root != self.project_dir),
        ]
        self._local_paths.clear()

    def invalidate(self, command: str | None = None) -> None:
        """Forget cached paths for *command*, or for every tool."""
        if command is None:
            self._global_paths.clear()
            self._local_paths.clear()
            return
        self._global_paths.pop(command, None)
        self._local_paths.pop(command, None)

    # -- Authentication ----------------------------------------------------

    def cached_auth(self, provider: str) -> bool | None:
        return self._auth.get(provider)

    def record_auth(self, provider: str, authenticated: bool) -> None:
        self._auth[provider] = authenticated

    def invalidate_auth(self, provider: str | None = None) -> None:
        if provider is None:
            self._auth.clear()
        else:
            self._auth.pop(provider, None)
