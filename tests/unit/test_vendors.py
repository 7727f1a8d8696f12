"""Tests for vendor download templates and the custom source providers."""

import httpx
import pytest

from tests.factories import github_release, github_tag, make_release, make_settings, mock_session
from versiontracker.sources.base import SourceFetchError
from versiontracker.sources.vendors import (
    ApacheHttpdProvider,
    DockerProvider,
    GitProvider,
    GoDownloadsProvider,
    NodeDistProvider,
    RedisProvider,
    TemurinProvider,
    composer_downloads,
    node_downloads,
    parse_java_version,
    php_downloads,
    ruby_downloads,
)

LOUNGE_HTML = """
<html><body>
  <a href="/download/VS17/binaries/httpd-2.4.62-240904-win64-VS17.zip">Apache 2.4.62 Win64</a>
  <a href="/download/VS17/binaries/httpd-2.4.62-240904-win64-VS17.zip.asc">PGP</a>
  <a href="/download/VS17/modules/mod_fcgid-2.3.10-win64-VS17.zip">mod_fcgid</a>
</body></html>
"""


def _json_routes(routes: dict[str, object]):
    """Route by URL prefix; ints are returned as bare status codes."""

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        for prefix, payload in routes.items():
            if url.startswith(prefix):
                if isinstance(payload, int):
                    return httpx.Response(payload)
                if isinstance(payload, str):
                    return httpx.Response(200, text=payload)
                return httpx.Response(200, json=payload)
        return httpx.Response(200, json=[])

    return handler


def test_php_downloads_pick_toolset_by_release_line() -> None:
    assert "vs17" in php_downloads("8.4.1")["windows"][0].url
    assert "vc15" in php_downloads("7.4.33")["windows"][0].url
    assert "vs16" in php_downloads("8.2.0")["windows"][1].name
    assert php_downloads("8.2.0")["windows"][1].type == "Non-Thread Safe (NTS)"


def test_ruby_and_composer_download_templates() -> None:
    ruby = ruby_downloads("3.3.1")
    assert ruby["source"][0].url == "https://cache.ruby-lang.org/pub/ruby/3.3/ruby-3.3.1.tar.gz"
    assert list(composer_downloads("2.7.7")) == ["other"]
    assert node_downloads("v22.1.0")["source"][0].url == "https://nodejs.org/dist/v22.1.0/node-v22.1.0.tar.gz"


@pytest.mark.parametrize(
    ("tag", "expected"),
    [
        ("jdk-21.0.3+9", (21, 0, 3, 9)),
        ("jdk-22+36", (22, 0, 0, 36)),
        ("jdk8u412-b08", (8, 412, 0, 8)),
    ],
)
def test_parse_java_version(tag: str, expected: tuple[int, int, int, int]) -> None:
    assert parse_java_version(make_release("x", tag=tag)) == expected


@pytest.mark.asyncio
async def test_node_provider_reads_index_and_tracks_latest_lts() -> None:
    feed = [
        {"version": "v22.1.0", "date": "2026-04-01", "lts": False},
        {"version": "v20.12.0", "date": "2026-03-01", "lts": "Iron"},
        {"version": "v18.20.0", "date": "2026-02-01", "lts": "Hydrogen"},
    ]
    handler = _json_routes({"https://nodejs.org/dist/index.json": feed})

    async with mock_session(handler) as session:
        result = await NodeDistProvider().fetch(session, {"18.20.0"})

    assert [record.version for record in result.versions] == ["22.1.0", "20.12.0"]
    assert result.versions[0].lts is False
    assert result.versions[1].lts == "Iron"
    assert result.versions[1].published_at == "2026-03-01"
    assert result.metadata["latest_lts"]["version"] == "20.12.0"


@pytest.mark.asyncio
async def test_go_provider_maps_files_to_platforms() -> None:
    feed = [
        {
            "version": "go1.22.1",
            "stable": True,
            "files": [
                {
                    "filename": "go1.22.1.windows-amd64.msi",
                    "os": "windows",
                    "arch": "amd64",
                    "size": 1048576,
                    "sha256": "abc",
                    "kind": "installer",
                },
                {"filename": "go1.22.1.darwin-arm64.pkg", "os": "darwin", "arch": "arm64", "kind": "installer"},
                {"filename": "go1.22.1.src.tar.gz", "os": "", "arch": "", "kind": "source", "size": 2048},
                {"filename": "go1.22.1.freebsd-amd64.tar.gz", "os": "freebsd", "arch": "amd64", "kind": "archive"},
            ],
        },
        {"version": "go1.23rc1", "stable": False, "files": []},
        {"version": "go1.21.0", "stable": True, "files": []},
    ]
    handler = _json_routes({"https://go.dev/dl/": feed})

    async with mock_session(handler) as session:
        result = await GoDownloadsProvider().fetch(session, {"1.21.0"})

    assert [record.version for record in result.versions] == ["1.22.1", "1.23rc1"]
    release = result.versions[0]
    assert release.tag == "go1.22.1"
    assert release.stable is True
    assert release.downloads is not None
    assert sorted(release.downloads) == ["macos", "source", "windows"]
    installer = release.downloads["windows"][0]
    assert installer.url == "https://go.dev/dl/go1.22.1.windows-amd64.msi"
    assert installer.sha256 == "abc"
    assert installer.size == "1.00 MB"
    assert release.downloads["source"][0].arch is None
    assert result.versions[1].stable is False
    assert result.versions[1].downloads is None


@pytest.mark.asyncio
async def test_temurin_discovers_majors_and_sorts_by_java_version() -> None:
    handler = _json_routes(
        {
            "https://api.github.com/orgs/adoptium/repos": [
                {"name": "temurin8-binaries"},
                {"name": "temurin21-binaries"},
                {"name": "temurin-build"},
            ],
            "https://api.github.com/repos/adoptium/temurin21-binaries/releases": [
                github_release("jdk-21.0.4+7-ea-beta", prerelease=True),
                github_release("jdk-21.0.3+9"),
            ],
            "https://api.github.com/repos/adoptium/temurin8-binaries/releases": [github_release("jdk8u412-b08")],
        }
    )

    async with mock_session(handler) as session:
        result = await TemurinProvider().fetch(session, set())

    assert [record.tag for record in result.versions] == ["jdk-21.0.3+9", "jdk8u412-b08"]
    newest = result.versions[0]
    assert newest.version == "21.0.3+9"
    assert newest.major_version == 21
    assert newest.lts is True
    assert newest.stable is True
    assert newest.observed()["release_date"] == newest.published_at
    assert result.versions[1].version == "8u412-b08"
    assert result.metadata["latest_lts"]["tag"] == "jdk-21.0.3+9"
    assert result.metadata["download_page"] == "https://adoptium.net/temurin/releases/"


@pytest.mark.asyncio
async def test_redis_attaches_windows_builds_by_version() -> None:
    windows_asset = {"name": "Redis-7.4.1-Windows-x64-msys2.zip", "browser_download_url": "https://x/redis.zip"}
    handler = _json_routes(
        {
            "https://api.github.com/repos/redis/redis/releases": [github_release("7.4.1"), github_release("7.4.0")],
            "https://api.github.com/repos/redis-windows/redis-windows/releases": [
                github_release("7.4.1", assets=[windows_asset])
            ],
        }
    )

    async with mock_session(handler) as session:
        result = await RedisProvider().fetch(session, set())

    by_version = {record.version: record for record in result.versions}
    assert by_version["7.4.1"].downloads is not None
    assert by_version["7.4.1"].downloads["windows"][0].url == "https://x/redis.zip"
    assert by_version["7.4.0"].downloads is None
    assert result.metadata["windows_builds_source"] == "https://github.com/redis-windows/redis-windows"


@pytest.mark.asyncio
async def test_redis_tolerates_missing_windows_source() -> None:
    handler = _json_routes(
        {
            "https://api.github.com/repos/redis/redis/releases": [github_release("7.4.1")],
            "https://api.github.com/repos/redis-windows/redis-windows/releases": 404,
        }
    )

    async with mock_session(handler) as session:
        result = await RedisProvider().fetch(session, set())

    assert [record.version for record in result.versions] == ["7.4.1"]


@pytest.mark.asyncio
async def test_redis_official_failure_is_a_source_error() -> None:
    handler = _json_routes({"https://api.github.com/repos/redis/redis/releases": 404})

    async with mock_session(handler) as session:
        with pytest.raises(SourceFetchError):
            await RedisProvider().fetch(session, set())


def _git_routes(windows_status: int | None = None):
    def exe(version: str) -> dict:
        return {"name": f"Git-{version}-64-bit.exe", "browser_download_url": f"https://x/Git-{version}-64-bit.exe"}

    windows: object = windows_status or [
        github_release("v2.46.0.windows.1", assets=[exe("2.46.0")]),
        github_release("v2.45.1.windows.2", assets=[exe("2.45.1.2")]),
        github_release("v2.45.1.windows.1", assets=[exe("2.45.1")]),
    ]
    return _json_routes(
        {
            "https://api.github.com/repos/git/git/tags": [
                github_tag("v2.45.1"),
                github_tag("v2.45.0-rc0"),
                github_tag("v2.45.0"),
            ],
            "https://api.github.com/repos/git-for-windows/git/releases": windows,
        }
    )


@pytest.mark.asyncio
async def test_git_combines_source_tags_with_windows_builds() -> None:
    async with mock_session(_git_routes(), make_settings(fetch_tag_dates=False)) as session:
        result = await GitProvider().fetch(session, set())

    assert [record.version for record in result.versions] == ["2.46.0", "2.45.1", "2.45.0"]
    windows_only, combined, source_only = result.versions
    assert windows_only.downloads is not None
    assert list(windows_only.downloads) == ["windows"]
    assert combined.downloads is not None
    assert combined.downloads["windows"][0].name == "Git-2.45.1.2-64-bit.exe"
    assert combined.downloads["source"][0].url == "https://github.com/git/git/archive/refs/tags/v2.45.1.tar.gz"
    assert source_only.downloads is not None
    assert list(source_only.downloads) == ["source"]
    assert result.metadata["download_page"] == "https://git-scm.com/downloads"


@pytest.mark.asyncio
async def test_git_skips_windows_only_versions_already_known() -> None:
    async with mock_session(_git_routes(), make_settings(fetch_tag_dates=False)) as session:
        result = await GitProvider().fetch(session, {"2.46.0"})

    assert "2.46.0" not in [record.version for record in result.versions]


@pytest.mark.asyncio
async def test_git_without_windows_source_keeps_source_tags() -> None:
    async with mock_session(_git_routes(windows_status=404), make_settings(fetch_tag_dates=False)) as session:
        result = await GitProvider().fetch(session, set())

    assert [record.version for record in result.versions] == ["2.45.1", "2.45.0"]


@pytest.mark.asyncio
async def test_docker_probes_installers_once_and_copies_them_per_release() -> None:
    head_requests: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "HEAD":
            head_requests.append(str(request.url))
            return httpx.Response(200, headers={"content-length": "1024"})
        if request.url.path == "/repos/moby/moby/releases":
            return httpx.Response(200, json=[github_release("v27.0.1"), github_release("v27.0.0")])
        return httpx.Response(200, json=[])

    async with mock_session(handler, make_settings(probe_sizes=True)) as session:
        result = await DockerProvider().fetch(session, set())

    assert len(head_requests) == 3
    first, second = result.versions
    assert first.downloads is not None
    assert second.downloads is not None
    assert len(first.downloads["macos"]) == 2
    assert first.downloads["windows"][0].size_bytes == 1024
    assert first.downloads["windows"][0] is not second.downloads["windows"][0]
    assert result.metadata["download_page"] == "https://www.docker.com/products/docker-desktop/"


@pytest.mark.asyncio
async def test_apache_pairs_source_tags_with_lounge_binaries() -> None:
    handler = _json_routes(
        {
            "https://www.apachelounge.com/download/": LOUNGE_HTML,
            "https://api.github.com/repos/apache/httpd/tags": [
                github_tag("2.5.0-alpha"),
                github_tag("2.4.62"),
                github_tag("2.4.61"),
            ],
        }
    )

    async with mock_session(handler, make_settings(fetch_tag_dates=False)) as session:
        result = await ApacheHttpdProvider().fetch(session, set())

    assert [record.version for record in result.versions] == ["2.4.62", "2.4.61"]
    newest, older = result.versions
    assert newest.downloads is not None
    assert newest.downloads["windows"][0].url == (
        "https://www.apachelounge.com/download/VS17/binaries/httpd-2.4.62-240904-win64-VS17.zip"
    )
    assert newest.downloads["source"][0].url == "https://archive.apache.org/dist/httpd/httpd-2.4.62.tar.gz"
    assert older.downloads is not None
    assert list(older.downloads) == ["source"]
    assert result.metadata["windows_builds"] == "https://www.apachelounge.com/download/"


@pytest.mark.asyncio
async def test_apache_continues_when_lounge_is_down() -> None:
    handler = _json_routes(
        {
            "https://www.apachelounge.com/download/": 404,
            "https://api.github.com/repos/apache/httpd/tags": [github_tag("2.4.62")],
        }
    )

    async with mock_session(handler, make_settings(fetch_tag_dates=False)) as session:
        result = await ApacheHttpdProvider().fetch(session, set())

    assert result.versions[0].downloads is not None
    assert "windows" not in result.versions[0].downloads
