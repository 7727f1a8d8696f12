"""Vendor download templates and the custom source providers.

Download templates turn a version identity into the vendor's well-known
artifact URLs. Custom providers cover upstreams that are not a single
GitHub listing: JSON feeds, org-wide repo discovery, composites of two
repositories and a scraped binary index.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any, TypeAlias

from loguru import logger

from versiontracker.extraction.html_parser import APACHE_LOUNGE_URL, parse_apache_lounge_binaries
from versiontracker.models.release import DownloadAsset, FetchResult, ReleaseRecord
from versiontracker.sources.base import PROVIDER_ERRORS, SourceFetchError, SourceProvider, SourceSession, dig
from versiontracker.sources.enrich import probe_sizes
from versiontracker.sources.github import GitHubReleasesProvider, GitHubTagsProvider
from versiontracker.utils.parsing import format_file_size, major_minor
from versiontracker.utils.versions import VersionRule, sort_newest_first, version_parts

if TYPE_CHECKING:
    from versiontracker.models.release import Platform

Downloads: TypeAlias = "dict[Platform, list[DownloadAsset]]"

JAVA_LTS_MAJORS = frozenset({8, 11, 17, 21, 25, 29, 33})
RUST_INSTALL_COMMAND = "curl --proto '=https' --tlsv1.2 -sSf https://sh.rustup.rs | sh"

_TEMURIN_REPO_RE = re.compile(r"^temurin(\d+)-binaries$")
_JAVA_MODERN_RE = re.compile(r"jdk-?(\d+)(?:\.(\d+))?(?:\.(\d+))?(?:\+(\d+))?")
_JAVA_LEGACY_RE = re.compile(r"jdk(\d+)u(\d+)-b(\d+)")
_TRIPLE_RE = re.compile(r"(\d+\.\d+\.\d+)")


def _asset(name: str, url: str, type_: str | None = None, arch: str | None = None) -> DownloadAsset:
    return DownloadAsset(name=name, url=url, type=type_, arch=arch)


def _php_build_toolset(version: str) -> str:
    """Visual Studio toolset used by windows.php.net for a PHP release line."""

    parts = version_parts(version)
    major, minor = parts[0], parts[1] if len(parts) > 1 else 0
    if major >= 8 and minor >= 4:
        return "vs17"
    if major == 7 and minor == 4:
        return "vc15"
    return "vs16"


def php_downloads(version: str) -> Downloads:
    toolset = _php_build_toolset(version)
    base = "https://windows.php.net/downloads/releases"
    return {
        "windows": [
            _asset(
                f"php-{version}-Win32-{toolset}-x64.zip",
                f"{base}/php-{version}-Win32-{toolset}-x64.zip",
                "Thread Safe (TS)",
                "x64",
            ),
            _asset(
                f"php-{version}-nts-Win32-{toolset}-x64.zip",
                f"{base}/php-{version}-nts-Win32-{toolset}-x64.zip",
                "Non-Thread Safe (NTS)",
                "x64",
            ),
        ],
        "source": [
            _asset(f"php-{version}.tar.gz", f"https://www.php.net/distributions/php-{version}.tar.gz", "source"),
        ],
    }


def python_downloads(version: str) -> Downloads:
    base = f"https://www.python.org/ftp/python/{version}"
    return {
        "windows": [_asset(f"python-{version}-amd64.exe", f"{base}/python-{version}-amd64.exe", "installer", "x64")],
        "macos": [_asset(f"python-{version}-macos11.pkg", f"{base}/python-{version}-macos11.pkg", "installer")],
        "source": [_asset(f"Python-{version}.tar.xz", f"{base}/Python-{version}.tar.xz", "source")],
    }


def ruby_downloads(version: str) -> Downloads:
    installer = f"https://github.com/oneclick/rubyinstaller2/releases/download/RubyInstaller-{version}-1"
    return {
        "windows": [
            _asset(
                f"rubyinstaller-{version}-x64.exe",
                f"{installer}/rubyinstaller-{version}-1-x64.exe",
                "installer",
                "x64",
            )
        ],
        "source": [
            _asset(
                f"ruby-{version}.tar.gz",
                f"https://cache.ruby-lang.org/pub/ruby/{major_minor(version)}/ruby-{version}.tar.gz",
                "source",
            )
        ],
    }


def rust_downloads(version: str) -> Downloads:
    base = "https://static.rust-lang.org/dist"
    return {
        "windows": [
            _asset(
                f"rust-{version}-x86_64-pc-windows-msvc.msi",
                f"{base}/rust-{version}-x86_64-pc-windows-msvc.msi",
                "installer",
                "x64",
            )
        ],
        "linux": [
            _asset(
                f"rust-{version}-x86_64-unknown-linux-gnu.tar.gz",
                f"{base}/rust-{version}-x86_64-unknown-linux-gnu.tar.gz",
                "binaries",
                "x64",
            )
        ],
        "macos": [
            _asset(
                f"rust-{version}-x86_64-apple-darwin.tar.gz",
                f"{base}/rust-{version}-x86_64-apple-darwin.tar.gz",
                "binaries",
                "x64",
            )
        ],
    }


def postgresql_downloads(version: str) -> Downloads:
    edb = "https://get.enterprisedb.com/postgresql"
    return {
        "windows": [
            _asset(
                f"postgresql-{version}-1-windows-x64.exe",
                f"{edb}/postgresql-{version}-1-windows-x64.exe",
                "installer",
                "x64",
            ),
            _asset(
                f"postgresql-{version}-1-windows-x64-binaries.zip",
                f"{edb}/postgresql-{version}-1-windows-x64-binaries.zip",
                "binaries",
                "x64",
            ),
        ],
        "source": [
            _asset(
                f"postgresql-{version}.tar.gz",
                f"https://ftp.postgresql.org/pub/source/v{version}/postgresql-{version}.tar.gz",
                "source",
            )
        ],
    }


def mysql_downloads(version: str) -> Downloads:
    base = f"https://cdn.mysql.com/Downloads/MySQL-{major_minor(version)}"
    return {
        "windows": [_asset(f"mysql-{version}-winx64.zip", f"{base}/mysql-{version}-winx64.zip", "binaries")],
        "source": [_asset(f"mysql-{version}.tar.gz", f"{base}/mysql-{version}.tar.gz", "source")],
    }


def mariadb_downloads(version: str) -> Downloads:
    base = f"https://downloads.mariadb.org/rest-api/mariadb/{version}"
    return {
        "windows": [_asset(f"mariadb-{version}-winx64.zip", f"{base}/mariadb-{version}-winx64.zip", "binaries")],
        "source": [_asset(f"mariadb-{version}.tar.gz", f"{base}/mariadb-{version}.tar.gz", "source")],
    }


def mongodb_downloads(version: str) -> Downloads:
    base = "https://fastdl.mongodb.org"
    return {
        "windows": [
            _asset(
                f"mongodb-windows-x86_64-{version}.zip",
                f"{base}/windows/mongodb-windows-x86_64-{version}.zip",
                "binaries",
            )
        ],
        "linux": [
            _asset(
                f"mongodb-linux-x86_64-ubuntu2204-{version}.tgz",
                f"{base}/linux/mongodb-linux-x86_64-ubuntu2204-{version}.tgz",
                "binaries",
            )
        ],
        "macos": [
            _asset(f"mongodb-macos-arm64-{version}.tgz", f"{base}/osx/mongodb-macos-arm64-{version}.tgz", "binaries")
        ],
    }


def nginx_downloads(version: str) -> Downloads:
    base = "https://nginx.org/download"
    return {
        "windows": [_asset(f"nginx-{version}.zip", f"{base}/nginx-{version}.zip", "binaries")],
        "source": [_asset(f"nginx-{version}.tar.gz", f"{base}/nginx-{version}.tar.gz", "source")],
    }


def composer_downloads(version: str) -> Downloads:
    base = f"https://getcomposer.org/download/{version}"
    return {
        "other": [
            _asset("composer.phar", f"{base}/composer.phar", "phar"),
            _asset("composer-setup.php", f"{base}/composer-setup.php", "installer"),
        ]
    }


def git_source_downloads(version: str) -> list[DownloadAsset]:
    base = "https://github.com/git/git/archive/refs/tags"
    return [
        _asset(f"git-{version}.tar.gz", f"{base}/v{version}.tar.gz", "tarball"),
        _asset(f"git-{version}.zip", f"{base}/v{version}.zip", "zipball"),
    ]


def node_downloads(tag: str) -> Downloads:
    base = f"https://nodejs.org/dist/{tag}"
    return {
        "windows": [
            _asset(f"node-{tag}-win-x64.zip", f"{base}/node-{tag}-win-x64.zip", "binaries", "x64"),
            _asset(f"node-{tag}-x64.msi", f"{base}/node-{tag}-x64.msi", "installer", "x64"),
        ],
        "linux": [
            _asset(f"node-{tag}-linux-x64.tar.xz", f"{base}/node-{tag}-linux-x64.tar.xz", "binaries", "x64"),
            _asset(f"node-{tag}-linux-arm64.tar.xz", f"{base}/node-{tag}-linux-arm64.tar.xz", "binaries", "arm64"),
        ],
        "macos": [
            _asset(f"node-{tag}-darwin-arm64.tar.gz", f"{base}/node-{tag}-darwin-arm64.tar.gz", "binaries", "arm64"),
            _asset(f"node-{tag}.pkg", f"{base}/node-{tag}.pkg", "installer"),
        ],
        "source": [_asset(f"node-{tag}.tar.gz", f"{base}/node-{tag}.tar.gz", "source")],
    }


class NodeDistProvider(SourceProvider):
    """Node.js release index: one JSON document listing every release."""

    index_url = "https://nodejs.org/dist/index.json"

    @property
    def label(self) -> str:
        return "nodejs.org/dist"

    def to_record(self, item: dict[str, Any]) -> ReleaseRecord:
        tag = str(item["version"])
        return ReleaseRecord(
            version=tag.removeprefix("v"),
            tag=tag,
            lts=item.get("lts") or False,
            published_at=item.get("date"),
            downloads=node_downloads(tag),
        )

    async def collect(self, session: SourceSession, existing: set[str]) -> FetchResult:
        feed = [item for item in await session.get_json_list(self.index_url) if isinstance(item, dict)]
        records = [self.to_record(item) for item in feed if str(item.get("version", "")).removeprefix("v")]
        metadata: dict[str, Any] = {}
        latest_lts = next((record for record in records if record.lts), None)
        if latest_lts is not None:
            metadata["latest_lts"] = latest_lts.observed()
        new = [record for record in records if record.version not in existing]
        logger.info("{}: {} releases in feed, {} new", self.label, len(records), len(new))
        return FetchResult.from_versions(new, metadata=metadata)


class GoDownloadsProvider(SourceProvider):
    """go.dev download feed; files carry size, checksum and OS so no probing is needed."""

    feed_url = "https://go.dev/dl/?mode=json&include=all"
    _OS_BUCKETS: dict[str, Platform] = {"windows": "windows", "linux": "linux", "darwin": "macos"}

    @property
    def label(self) -> str:
        return "go.dev/dl"

    def to_record(self, release: dict[str, Any]) -> ReleaseRecord:
        downloads: dict[str, list[DownloadAsset]] = {}
        for file in release.get("files") or []:
            if not isinstance(file, dict):
                continue
            filename = file.get("filename")
            if not filename:
                continue
            size_bytes = file.get("size") if isinstance(file.get("size"), int) else None
            asset = DownloadAsset(
                name=filename,
                url=f"https://go.dev/dl/{filename}",
                size_bytes=size_bytes,
                size=format_file_size(size_bytes),
                sha256=file.get("sha256") or None,
                arch=file.get("arch") or None,
            )
            bucket = self._OS_BUCKETS.get(file.get("os") or "")
            if bucket is None and file.get("kind") == "source":
                bucket = "source"
            if bucket is not None:
                downloads.setdefault(bucket, []).append(asset)
        tag = str(release["version"])
        return ReleaseRecord(
            version=tag.removeprefix("go"),
            tag=tag,
            stable=bool(release.get("stable")),
            downloads=downloads,
        )

    async def collect(self, session: SourceSession, existing: set[str]) -> FetchResult:
        feed = await session.get_json_list(self.feed_url)
        new: list[ReleaseRecord] = []
        for release in feed:
            if not isinstance(release, dict):
                continue
            version = str(release.get("version", "")).removeprefix("go")
            if version and version not in existing:
                new.append(self.to_record(release))
        logger.info("{}: {} releases in feed, {} new", self.label, len(feed), len(new))
        return FetchResult.from_versions(new)


def parse_java_version(record: ReleaseRecord) -> tuple[int, int, int, int]:
    """(major, minor, patch, build) from a Temurin tag such as jdk-21.0.3+9 or jdk8u412-b08."""

    tag = record.tag or record.version
    legacy = _JAVA_LEGACY_RE.search(tag)
    if legacy is not None:
        return int(legacy.group(1)), int(legacy.group(2)), 0, int(legacy.group(3))
    modern = _JAVA_MODERN_RE.search(tag)
    if modern is not None:
        major, minor, patch, build = (int(group or 0) for group in modern.groups())
        return major, minor, patch, build
    return record.major_version or 0, 0, 0, 0


class TemurinProvider(SourceProvider):
    """Eclipse Temurin: discovers ``temurinNN-binaries`` repos, then lists each one's releases."""

    org = "adoptium"
    rule = VersionRule(strip_prefixes=("jdk-", "jdk"))

    @property
    def label(self) -> str:
        return f"github:{self.org}/temurin*-binaries"

    async def discover_majors(self, session: SourceSession) -> list[int]:
        page_size = session.settings.page_size
        majors: list[int] = []
        page = 1
        while True:
            url = session.github_url(f"orgs/{self.org}/repos?per_page={page_size}&page={page}")
            repos = await session.get_json_list(url)
            if not repos:
                break
            for repo in repos:
                match = _TEMURIN_REPO_RE.match(str(dig(repo, "name") or ""))
                if match:
                    majors.append(int(match.group(1)))
            if len(repos) < page_size:
                break
            page += 1
        return sorted(set(majors), reverse=True)

    async def collect(self, session: SourceSession, existing: set[str]) -> FetchResult:
        majors = await self.discover_majors(session)
        logger.info("{}: found Java majors {}", self.label, majors)
        records: list[ReleaseRecord] = []
        stopped_early = False
        for major in majors:
            provider = GitHubReleasesProvider(
                self.org,
                f"temurin{major}-binaries",
                rule=self.rule,
                release_fields={"major_version": major},
            )
            result = await provider.collect(session, existing)
            records.extend(result.versions)
            stopped_early = stopped_early or result.stopped_early

        records = [
            ReleaseRecord.model_validate(
                record.observed()
                | {
                    "lts": parse_java_version(record)[0] in JAVA_LTS_MAJORS,
                    "stable": not record.prerelease,
                    "release_date": record.published_at,
                }
            )
            for record in records
        ]
        records.sort(key=parse_java_version, reverse=True)

        metadata: dict[str, Any] = {"download_page": "https://adoptium.net/temurin/releases/"}
        latest_lts = next((record for record in records if record.lts and record.stable), None)
        if latest_lts is not None:
            metadata["latest_lts"] = latest_lts.observed()
        return FetchResult.from_versions(records, stopped_early=stopped_early, metadata=metadata)


class RedisProvider(SourceProvider):
    """Official Redis releases with Windows builds taken from the community redis-windows project."""

    windows_repo = ("redis-windows", "redis-windows")

    def __init__(self) -> None:
        self.official = GitHubReleasesProvider("redis", "redis")
        self.windows = GitHubReleasesProvider(*self.windows_repo)

    @property
    def label(self) -> str:
        return self.official.label

    async def collect(self, session: SourceSession, existing: set[str]) -> FetchResult:
        result = await self.official.collect(session, existing)
        windows_builds: dict[str, ReleaseRecord] = {}
        try:
            windows_result = await self.windows.fetch(session, existing)
        except SourceFetchError as exc:
            logger.warning("Redis Windows builds unavailable: {}", exc)
        else:
            for build in windows_result.versions:
                match = _TRIPLE_RE.search(build.version)
                if match:
                    windows_builds[match.group(1)] = build

        for record in result.versions:
            build = windows_builds.get(record.version)
            if build is None or not build.downloads:
                continue
            windows = build.downloads.get("windows") or build.downloads.get("other") or []
            if windows:
                record.downloads = {**(record.downloads or {}), "windows": windows}

        result.metadata.update(
            download_page="https://redis.io/download/",
            windows_builds_source=f"https://github.com/{'/'.join(self.windows_repo)}",
        )
        return result


class GitProvider(SourceProvider):
    """Git source tags combined with Git for Windows installers.

    Windows builds are keyed by their leading ``X.Y.Z``; the first (newest)
    build per version wins. Versions only Git for Windows has published are
    added with Windows downloads alone.
    """

    def __init__(self) -> None:
        self.official = GitHubTagsProvider("git", "git", rule=VersionRule(pattern=re.compile(r"^v\d+\.\d+\.\d+$")))
        self.windows = GitHubReleasesProvider("git-for-windows", "git")

    @property
    def label(self) -> str:
        return self.official.label

    async def collect(self, session: SourceSession, existing: set[str]) -> FetchResult:
        official = await self.official.collect(session, existing)
        windows_builds: dict[str, ReleaseRecord] = {}
        try:
            windows_result = await self.windows.fetch(session, existing)
        except SourceFetchError as exc:
            logger.warning("Git for Windows builds unavailable: {}", exc)
        else:
            for build in windows_result.versions:
                match = re.match(r"^(\d+\.\d+\.\d+)", build.version)
                if match:
                    windows_builds.setdefault(match.group(1), build)

        def _windows(version: str) -> list[DownloadAsset]:
            build = windows_builds.get(version)
            return list((build.downloads or {}).get("windows", [])) if build is not None else []

        records: list[ReleaseRecord] = []
        for record in official.versions:
            record.downloads = {
                bucket: assets
                for bucket, assets in (
                    ("windows", _windows(record.version)),
                    ("source", git_source_downloads(record.version)),
                )
                if assets
            }
            records.append(record)
        known = {record.version for record in records} | existing
        for version in windows_builds:
            if version not in known and _windows(version):
                records.append(
                    ReleaseRecord(version=version, tag=f"v{version}", downloads={"windows": _windows(version)})
                )

        return FetchResult.from_versions(
            sort_newest_first(records),
            stopped_early=official.stopped_early,
            metadata={
                "download_page": "https://git-scm.com/downloads",
                "windows_builds_source": "https://github.com/git-for-windows/git",
            },
        )


DOCKER_DESKTOP_INSTALLERS: tuple[tuple[Platform, str, str, str | None], ...] = (
    (
        "windows",
        "Docker Desktop Installer.exe",
        "https://desktop.docker.com/win/main/amd64/Docker%20Desktop%20Installer.exe",
        None,
    ),
    ("macos", "Docker.dmg (Intel)", "https://desktop.docker.com/mac/main/amd64/Docker.dmg", "x64"),
    ("macos", "Docker.dmg (ARM)", "https://desktop.docker.com/mac/main/arm64/Docker.dmg", "arm64"),
)


class DockerProvider(SourceProvider):
    """Moby engine releases paired with the current Docker Desktop installers.

    Desktop installers are published at fixed, unversioned URLs, so every new
    release record points at the same artifacts.
    """

    probe_batch_size = 5

    def __init__(self) -> None:
        self.releases = GitHubReleasesProvider("moby", "moby")

    @property
    def label(self) -> str:
        return self.releases.label

    async def collect(self, session: SourceSession, existing: set[str]) -> FetchResult:
        result = await self.releases.collect(session, existing)
        if not result.versions:
            return result
        installers = [
            (platform, _asset(name, url, "installer", arch)) for platform, name, url, arch in DOCKER_DESKTOP_INSTALLERS
        ]
        if session.settings.probe_sizes:
            await probe_sizes(session, [asset for _, asset in installers], batch_size=self.probe_batch_size)
        for record in result.versions:
            downloads: dict[str, list[DownloadAsset]] = {}
            for platform, asset in installers:
                downloads.setdefault(platform, []).append(asset.model_copy())
            record.downloads = downloads
        result.metadata["download_page"] = "https://www.docker.com/products/docker-desktop/"
        return result


class ApacheHttpdProvider(SourceProvider):
    """Apache httpd source tags plus the win64 builds listed on ApacheLounge."""

    def __init__(self, lounge_url: str = APACHE_LOUNGE_URL) -> None:
        self.lounge_url = lounge_url

    @property
    def label(self) -> str:
        return "github:apache/httpd/tags"

    async def collect(self, session: SourceSession, existing: set[str]) -> FetchResult:
        binaries: dict[str, DownloadAsset] = {}
        try:
            binaries = parse_apache_lounge_binaries(await session.get_text(self.lounge_url), base_url=self.lounge_url)
        except PROVIDER_ERRORS as exc:
            logger.warning("ApacheLounge listing unavailable: {}", exc)
        logger.info("Found {} Apache Windows binaries on ApacheLounge", len(binaries))

        def _downloads(version: str) -> Downloads:
            source = _asset(
                f"httpd-{version}.tar.gz", f"https://archive.apache.org/dist/httpd/httpd-{version}.tar.gz", "source"
            )
            downloads: Downloads = {"source": [source]}
            if version in binaries:
                downloads = {"windows": [binaries[version].model_copy()], **downloads}
            return downloads

        tags = GitHubTagsProvider(
            "apache",
            "httpd",
            rule=VersionRule(pattern=re.compile(r"^\d+\.\d+\.\d+$")),
            downloads=_downloads,
            probe_platforms=("windows", "source"),
        )
        result = await tags.collect(session, existing)
        result.metadata.update(download_page="https://httpd.apache.org/download.cgi", windows_builds=self.lounge_url)
        return result

