"""Export of spreadsheet tabs and their images to disk."""

from .images import ImageDownloader, ImageJob, ImageResult, export_images, plan_image_downloads
from .naming import sanitize_filename, unique_image_names, unique_sheet_names
from .writer import (
    ExportError,
    ExportFormat,
    dump_json,
    export_sheets,
    export_unique_entry_ids,
    save_raw,
)

__all__ = [
    "ImageDownloader",
    "ImageJob",
    "ImageResult",
    "export_images",
    "plan_image_downloads",
    "sanitize_filename",
    "unique_image_names",
    "unique_sheet_names",
    "ExportError",
    "ExportFormat",
    "dump_json",
    "export_sheets",
    "export_unique_entry_ids",
    "save_raw",
]
