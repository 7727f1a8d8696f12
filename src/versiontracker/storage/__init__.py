"""Storage helpers."""

from .dataset import load_dataset, save_dataset
from .summary import render_summary

__all__ = ["load_dataset", "render_summary", "save_dataset"]
