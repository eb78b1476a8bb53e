"""Export of fetched messages to the local filesystem."""

from .formatters import StructuredLayoutFormatter, TemplateFormatter, load_template
from .paths import export_directory_name, item_name, sanitize_filename
from .pipeline import ExportPipeline, ProgressCallback

__all__ = [
    "ExportPipeline",
    "ProgressCallback",
    "StructuredLayoutFormatter",
    "TemplateFormatter",
    "export_directory_name",
    "item_name",
    "load_template",
    "sanitize_filename",
]
