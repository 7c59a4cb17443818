"""Templates for merged transcripts (CSS) and the SMS Backup & Restore export (XML)."""

from .loader import TemplateLoader, get_template_loader

__all__ = [
    "TemplateLoader",
    "get_template_loader",
]
