"""The table of tracked software, in fetch order."""

from __future__ import annotations

import re
from dataclasses import dataclass

from versiontracker.sources.base import SourceProvider  # noqa: TC001
from versiontracker.sources.github import GitHubReleasesProvider, GitHubTagsProvider
from versiontracker.sources.vendors import (
    RUST_INSTALL_COMMAND,
    ApacheHttpdProvider,
    DockerProvider,
    GitProvider,
    GoDownloadsProvider,
    NodeDistProvider,
    RedisProvider,
    TemurinProvider,
    composer_downloads,
    mariadb_downloads,
    mongodb_downloads,
    mysql_downloads,
    nginx_downloads,
    php_downloads,
    postgresql_downloads,
    python_downloads,
    ruby_downloads,
    rust_downloads,
)
from versiontracker.utils.versions import VersionRule


@dataclass(frozen=True)
class TrackedSoftware:
    """One registry row: identity, category and the provider that fetches it."""

    name: str
    category: str
    website: str
    provider: SourceProvider
    download_page: str | None = None
    install_command: str | None = None

    def entry_metadata(self) -> dict[str, str]:
        metadata = {"website": self.website}
        if self.download_page:
            metadata["download_page"] = self.download_page
        if self.install_command:
            metadata["install_command"] = self.install_command
        return metadata


def _rule(pattern: str, *prefixes: str, separator: str | None = None) -> VersionRule:
    return VersionRule(pattern=re.compile(pattern), strip_prefixes=prefixes, separator=separator)


# name, category, website, GitHub owner, GitHub repo, install command
_RELEASE_LIST_SOFTWARE: tuple[tuple[str, str, str, str, str, str], ...] = (
    ("npm", "Package Managers", "https://www.npmjs.com", "npm", "cli", "npm install -g npm@latest"),
    (
        "Yarn",
        "Package Managers",
        "https://yarnpkg.com",
        "yarnpkg",
        "berry",
        "corepack enable && yarn set version stable",
    ),
    ("pnpm", "Package Managers", "https://pnpm.io", "pnpm", "pnpm", "npm install -g pnpm"),
    ("Bun", "Package Managers", "https://bun.sh", "oven-sh", "bun", "curl -fsSL https://bun.sh/install | bash"),
    (
        "Laravel",
        "Frameworks",
        "https://laravel.com",
        "laravel",
        "framework",
        "composer create-project laravel/laravel example-app",
    ),
    ("Next.js", "Frameworks", "https://nextjs.org", "vercel", "next.js", "npx create-next-app@latest"),
    ("Nuxt", "Frameworks", "https://nuxt.com", "nuxt", "nuxt", "npx nuxi@latest init <project-name>"),
    ("Vue.js", "Frameworks", "https://vuejs.org", "vuejs", "core", "npm create vue@latest"),
    ("React", "Frameworks", "https://react.dev", "facebook", "react", "npm install react react-dom"),
    ("Svelte", "Frameworks", "https://svelte.dev", "sveltejs", "svelte", "npx sv create my-app"),
)


def build_registry() -> list[TrackedSoftware]:
    """Return every tracked software in deterministic fetch order."""

    return [
        TrackedSoftware(
            "PHP",
            "Languages",
            "https://www.php.net",
            GitHubTagsProvider(
                "php",
                "php-src",
                rule=_rule(r"^php-\d+\.\d+\.\d+$", "php-"),
                downloads=php_downloads,
                probe_platforms=("windows", "source"),
            ),
        ),
        TrackedSoftware("Node.js", "Languages", "https://nodejs.org", NodeDistProvider()),
        TrackedSoftware("Go", "Languages", "https://go.dev", GoDownloadsProvider()),
        TrackedSoftware(
            "Python",
            "Languages",
            "https://www.python.org",
            GitHubTagsProvider(
                "python",
                "cpython",
                rule=_rule(r"^v?\d+\.\d+\.\d+$"),
                downloads=python_downloads,
                probe_platforms=("windows", "source"),
            ),
        ),
        TrackedSoftware(
            "Ruby",
            "Languages",
            "https://www.ruby-lang.org",
            GitHubTagsProvider(
                "ruby",
                "ruby",
                rule=_rule(r"^v\d+_\d+_\d+$", separator="_"),
                downloads=ruby_downloads,
                probe_platforms=("source",),
            ),
        ),
        TrackedSoftware(
            "Rust",
            "Languages",
            "https://www.rust-lang.org",
            GitHubReleasesProvider(
                "rust-lang",
                "rust",
                downloads=rust_downloads,
                probe_platforms=("windows", "linux"),
                release_fields={"install_command": RUST_INSTALL_COMMAND},
            ),
        ),
        TrackedSoftware(
            "Java (Eclipse Temurin)",
            "Languages",
            "https://adoptium.net",
            TemurinProvider(),
            download_page="https://adoptium.net/temurin/releases/",
        ),
        TrackedSoftware(
            "PostgreSQL",
            "Databases",
            "https://www.postgresql.org",
            GitHubTagsProvider(
                "postgres",
                "postgres",
                rule=_rule(r"^REL_\d+_\d+$", "REL_", separator="_"),
                downloads=postgresql_downloads,
                probe_platforms=("windows", "source"),
            ),
            download_page="https://www.postgresql.org/download/",
        ),
        TrackedSoftware(
            "MySQL",
            "Databases",
            "https://www.mysql.com",
            GitHubTagsProvider(
                "mysql",
                "mysql-server",
                rule=_rule(r"^mysql-\d+\.\d+\.\d+$", "mysql-"),
                downloads=mysql_downloads,
                probe_platforms=("windows", "source"),
            ),
            download_page="https://dev.mysql.com/downloads/mysql/",
        ),
        TrackedSoftware(
            "MariaDB",
            "Databases",
            "https://mariadb.org",
            GitHubTagsProvider(
                "MariaDB",
                "server",
                rule=_rule(r"^mariadb-\d+\.\d+\.\d+$", "mariadb-"),
                downloads=mariadb_downloads,
                probe_platforms=("source",),
            ),
            download_page="https://mariadb.org/download/",
        ),
        TrackedSoftware(
            "MongoDB",
            "Databases",
            "https://www.mongodb.com",
            GitHubTagsProvider(
                "mongodb",
                "mongo",
                rule=_rule(r"^r\d+\.\d+\.\d+$", "r"),
                downloads=mongodb_downloads,
            ),
            download_page="https://www.mongodb.com/try/download/community",
        ),
        TrackedSoftware(
            "Redis", "Databases", "https://redis.io", RedisProvider(), download_page="https://redis.io/download/"
        ),
        TrackedSoftware(
            "Nginx",
            "Web Servers",
            "https://nginx.org",
            GitHubTagsProvider(
                "nginx",
                "nginx",
                rule=_rule(r"^release-", "release-"),
                downloads=nginx_downloads,
                probe_platforms=("windows", "source"),
            ),
            download_page="https://nginx.org/en/download.html",
        ),
        TrackedSoftware(
            "Apache HTTP Server",
            "Web Servers",
            "https://httpd.apache.org",
            ApacheHttpdProvider(),
            download_page="https://httpd.apache.org/download.cgi",
        ),
        TrackedSoftware(
            "Composer",
            "Package Managers",
            "https://getcomposer.org",
            GitHubReleasesProvider("composer", "composer", downloads=composer_downloads, probe_platforms=("other",)),
        ),
        *(
            TrackedSoftware(name, category, website, GitHubReleasesProvider(owner, repo), install_command=command)
            for name, category, website, owner, repo, command in _RELEASE_LIST_SOFTWARE
        ),
        TrackedSoftware(
            "Docker",
            "DevOps",
            "https://www.docker.com",
            DockerProvider(),
            download_page="https://www.docker.com/products/docker-desktop/",
        ),
        TrackedSoftware(
            "Git", "DevOps", "https://git-scm.com", GitProvider(), download_page="https://git-scm.com/downloads"
        ),
    ]


def find_software(registry: list[TrackedSoftware], names: list[str]) -> list[TrackedSoftware]:
    """Filter the registry by case-insensitive name, keeping registry order."""

    wanted = {name.lower() for name in names}
    return [software for software in registry if software.name.lower() in wanted]
