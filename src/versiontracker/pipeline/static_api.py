"""Generate the static, read-only JSON API tree from the persisted dataset."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

from loguru import logger
from prefect import flow

from versiontracker.models.release import VersionsDataset, category_slug
from versiontracker.pipeline.normalize import drop_nulls, normalize_software

if TYPE_CHECKING:
    from versiontracker.settings import Settings

API_NAME = "Apps Version Tracker API"
API_VERSION = "2.0.0"
API_PREFIX = "/api/v1"


def _json_dump(path: Path, payload: Any, *, minify: bool) -> int:
    path.parent.mkdir(parents=True, exist_ok=True)
    if minify:
        content = json.dumps(payload, separators=(",", ":"), ensure_ascii=False, default=str)
    else:
        content = json.dumps(payload, indent=2, ensure_ascii=False, default=str)
    path.write_text(content, encoding="utf-8")
    return len(content.encode("utf-8"))


def _version_of(release: dict[str, Any] | None) -> str | None:
    return release.get("version") if release else None


def build_static_api(dataset_path: Path, api_dir: Path, *, minify: bool = True) -> dict[str, Any]:
    """Write ``software/``, ``latest/``, ``categories/``, ``all.json``, ``latest-all.json`` and ``meta.json``."""

    if not dataset_path.exists():
        raise FileNotFoundError(f"Missing dataset: {dataset_path}")
    dataset = VersionsDataset.model_validate_json(dataset_path.read_text(encoding="utf-8"))
    last_updated = dataset.last_updated.isoformat().replace("+00:00", "Z") if dataset.last_updated else None

    meta: dict[str, Any] = {
        "name": API_NAME,
        "version": API_VERSION,
        "last_updated": last_updated,
        "endpoints": {
            "all": f"{API_PREFIX}/all.json",
            "latest": f"{API_PREFIX}/latest/{{name}}.json",
            "software": f"{API_PREFIX}/software/{{name}}.json",
            "categories": f"{API_PREFIX}/categories/{{category}}.json",
            "meta": f"{API_PREFIX}/meta.json",
        },
        "available_software": [],
        "available_categories": [],
    }
    categories: dict[str, dict[str, Any]] = {}
    software_list: list[dict[str, Any]] = []
    latest_index: dict[str, dict[str, str | None]] = {}
    total_bytes = 0

    for category, entries in dataset.software.items():
        cat_slug = category_slug(category)
        if cat_slug not in categories:
            categories[cat_slug] = {"name": category, "slug": cat_slug, "software": []}
            meta["available_categories"].append(
                {"name": category, "slug": cat_slug, "endpoint": f"{API_PREFIX}/categories/{cat_slug}.json"}
            )

        for name, entry in entries.items():
            view = normalize_software(name, category, entry)
            slug = view["slug"]
            latest = view.get("latest")
            latest_stable = view.get("latest_stable", latest)
            endpoint = f"{API_PREFIX}/software/{slug}.json"

            software_list.append(
                {
                    "name": name,
                    "slug": slug,
                    "category": category,
                    "category_slug": cat_slug,
                    "latest_version": _version_of(latest),
                    "latest_stable": _version_of(latest_stable),
                    "total_versions": view["total_versions"],
                    "endpoint": endpoint,
                }
            )
            meta["available_software"].append(
                {
                    "name": name,
                    "slug": slug,
                    "category": category,
                    "endpoint": endpoint,
                    "latest_endpoint": f"{API_PREFIX}/latest/{slug}.json",
                }
            )

            latest_payload = drop_nulls(
                {
                    "name": name,
                    "slug": slug,
                    "website": view.get("website"),
                    "latest": latest,
                    "download_page": view.get("download_page"),
                    "latest_stable": view.get("latest_stable"),
                }
            )
            total_bytes += _json_dump(api_dir / "latest" / f"{slug}.json", latest_payload, minify=minify)
            total_bytes += _json_dump(api_dir / "software" / f"{slug}.json", view, minify=minify)

            categories[cat_slug]["software"].append(
                {
                    "name": name,
                    "slug": slug,
                    "latest_version": _version_of(latest),
                    "latest_stable": _version_of(latest_stable),
                    "total_versions": view["total_versions"],
                }
            )
            latest_index[slug] = {"v": _version_of(latest), "s": _version_of(latest_stable)}

    for cat_slug, payload in categories.items():
        total_bytes += _json_dump(api_dir / "categories" / f"{cat_slug}.json", payload, minify=minify)
    total_bytes += _json_dump(
        api_dir / "all.json",
        {"last_updated": last_updated, "total_software": len(software_list), "software": software_list},
        minify=minify,
    )
    total_bytes += _json_dump(
        api_dir / "latest-all.json",
        {"last_updated": last_updated, "software": latest_index},
        minify=minify,
    )
    total_bytes += _json_dump(api_dir / "meta.json", meta, minify=minify)

    logger.info(
        "API built: {} software in {} categories, {:.2f} MB",
        len(software_list),
        len(categories),
        total_bytes / 1024 / 1024,
    )
    return {
        "api_dir": str(api_dir),
        "total_software": len(software_list),
        "total_categories": len(categories),
        "total_bytes": total_bytes,
    }


@flow(name="versiontracker-build-api")
def build_api_flow(settings: Settings) -> dict[str, Any]:
    """Prefect flow wrapper for static API generation."""

    return build_static_api(settings.dataset_path, settings.api_dir, minify=settings.minify_json)
