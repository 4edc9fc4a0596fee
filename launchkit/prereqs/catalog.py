"""Static catalogue of the tools a scaffolded project may need."""

from __future__ import annotations

from launchkit.config import DatabaseProvider
from launchkit.prereqs.models import Prerequisite

NODE = Prerequisite(
    name="Node.js",
    command="node",
    min_version="20.0.0",
    system_tool=True,
    install_url="https://nodejs.org/",
    description="JavaScript runtime for the server and build tooling",
    manual_steps={
        "darwin": ("brew install node@20", "or download the installer from https://nodejs.org/"),
        "win32": ("Download the LTS installer from https://nodejs.org/",),
        "default": (
            "Install Node.js 20+ with your package manager or nvm",
            "nvm install 20 && nvm use 20",
        ),
    },
)

PNPM = Prerequisite(
    name="pnpm",
    command="pnpm",
    min_version="8.0.0",
    npm_package="pnpm",
    can_install_globally=True,
    can_install_locally=True,
    install_url="https://pnpm.io/installation",
    description="Package manager used by the workspace",
)

GIT = Prerequisite(
    name="Git",
    command="git",
    version_pattern=r"git version (\d+\.\d+\.\d+)",
    system_tool=True,
    install_url="https://git-scm.com/downloads",
    description="Version control, used to fetch the template",
    manual_steps={
        "darwin": ("xcode-select --install", "or brew install git"),
        "win32": ("Download Git for Windows from https://git-scm.com/download/win",),
        "linux": ("sudo apt install git   (Debian/Ubuntu)", "sudo dnf install git   (Fedora)"),
    },
)

FIREBASE_CLI = Prerequisite(
    name="Firebase CLI",
    command="firebase",
    min_version="12.0.0",
    npm_package="firebase-tools",
    can_install_globally=True,
    can_install_locally=True,
    install_url="https://firebase.google.com/docs/cli",
    description="Creates the Firebase project used for authentication",
)

NEON_CLI = Prerequisite(
    name="Neon CLI",
    command="neonctl",
    npm_package="neonctl",
    can_install_globally=True,
    can_install_locally=True,
    install_url="https://neon.tech/docs/reference/neon-cli",
    description="Creates the Neon Postgres database",
)

SUPABASE_CLI = Prerequisite(
    name="Supabase CLI",
    command="supabase",
    npm_package="supabase",
    can_install_globally=False,
    can_install_locally=True,
    install_url="https://supabase.com/docs/guides/cli",
    description="Creates the Supabase Postgres database",
)

WRANGLER = Prerequisite(
    name="Wrangler",
    command="wrangler",
    min_version="3.0.0",
    npm_package="wrangler",
    can_install_globally=True,
    can_install_locally=True,
    install_url="https://developers.cloudflare.com/workers/wrangler/",
    description="Deploys the API to Cloudflare Workers",
)

EMBEDDED_POSTGRES = Prerequisite(
    name="Embedded PostgreSQL",
    command="embedded-postgres",
    bundled=True,
    description="Local database shipped with the template's dependencies",
)

CORE_PREREQUISITES: tuple[Prerequisite, ...] = (NODE, PNPM, GIT)

DATABASE_CLIS: dict[DatabaseProvider, Prerequisite] = {
    DatabaseProvider.NEON: NEON_CLI,
    DatabaseProvider.SUPABASE: SUPABASE_CLI,
}


def required_prerequisites(
    auth: bool = False,
    database: bool = False,
    deploy: bool = False,
    db_provider: DatabaseProvider | None = None,
) -> list[Prerequisite]:
    """Return the tools needed for the given capability selection.

    Local mode only needs the core toolchain plus the bundled database.
    Each production capability adds the CLI of its provider.
    """
    required = list(CORE_PREREQUISITES)
    if not database:
        required.append(EMBEDDED_POSTGRES)
    if auth:
        required.append(FIREBASE_CLI)
    if database and db_provider in DATABASE_CLIS:
        required.append(DATABASE_CLIS[db_provider])
    if deploy:
        required.append(WRANGLER)
    return required
