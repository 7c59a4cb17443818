"""Loader for the static assets injected into merged transcripts."""

from pathlib import Path
from typing import Dict, Optional


class TemplateLoader:
    """Reads template files on first use and keeps them in memory."""

    TEMPLATE_FILES = {
        "style": "merger_style.css",
    }

    def __init__(self, templates_dir: Optional[Path] = None):
        """
        Args:
            templates_dir: Directory holding the template files (this package by default)
        """
        self.templates_dir = Path(templates_dir) if templates_dir else Path(__file__).parent
        self._cache: Dict[str, str] = {}

    def get_template(self, name: str) -> str:
        """Return the content of a named template.

        Raises:
            KeyError: If the name is unknown
            FileNotFoundError: If the template file is missing from the installation
        """
        if name not in self._cache:
            if name not in self.TEMPLATE_FILES:
                raise KeyError(f"Template '{name}' not found")
            template_path = self.templates_dir / self.TEMPLATE_FILES[name]
            self._cache[name] = template_path.read_text(encoding="utf-8")
        return self._cache[name]

    def style_sheet(self) -> str:
        """CSS installed in every fixed transcript."""
        return self.get_template("style")


_template_loader = None


def get_template_loader() -> TemplateLoader:
    """Get the global template loader instance."""
    global _template_loader
    if _template_loader is None:
        _template_loader = TemplateLoader()
    return _template_loader
