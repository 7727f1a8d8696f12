"""Download extraction and classification."""

from .assets import classify_asset, classify_downloads, extract_assets
from .html_parser import parse_apache_lounge_binaries

__all__ = ["classify_asset", "classify_downloads", "extract_assets", "parse_apache_lounge_binaries"]
