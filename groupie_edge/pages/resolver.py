"""
File resolution for static assets and HTML pages.

Static assets are looked up in several base directories in order (the same
front-end has shipped under web/static, public/static and static). Paths that
escape their base directory, directories and missing files all raise
``AssetNotFound``.
"""

from pathlib import Path
from typing import Optional, Sequence

from ..config import Settings
from ..errors import AssetNotFound

# Extensions whose Content-Type is pinned instead of guessed.
CONTENT_TYPES = {
    ".css": "text/css; charset=utf-8",
    ".js": "application/javascript; charset=utf-8",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".svg": "image/svg+xml",
    ".gif": "image/gif",
    ".webp": "image/webp",
}


def content_type_for(path: Path) -> Optional[str]:
    return CONTENT_TYPES.get(path.suffix.lower())


def _resolve_under(base: Path, logical_path: str) -> Optional[Path]:
    base = base.resolve()
    candidate = (base / logical_path.lstrip("/")).resolve()
    if not candidate.is_relative_to(base):
        return None
    if not candidate.is_file():
        return None
    return candidate


class FileResolver:
    """
    Maps logical paths to files on disk.

    Args:
        static_dirs: Static directories, searched in order
        templates_dir: Directory holding the HTML pages
        index_file: Page served for the front-end entry routes
    """

    def __init__(self, static_dirs: Sequence[Path], templates_dir: Path, index_file: Path):
        self.static_dirs = [Path(d) for d in static_dirs]
        self.templates_dir = Path(templates_dir)
        self.index_file = Path(index_file)

    @classmethod
    def from_settings(cls, settings: Settings) -> "FileResolver":
        root = Path(settings.SITE_ROOT)
        return cls(
            static_dirs=[root / d for d in settings.static_dirs_list],
            templates_dir=root / settings.TEMPLATES_DIR,
            index_file=root / settings.INDEX_FILE,
        )

    def static(self, logical_path: str) -> Path:
        for base in self.static_dirs:
            found = _resolve_under(base, logical_path)
            if found is not None:
                return found
        raise AssetNotFound()

    def template(self, name: str) -> Path:
        found = _resolve_under(self.templates_dir, name)
        if found is None:
            raise AssetNotFound()
        return found

    def index(self) -> Path:
        if not self.index_file.is_file():
            raise AssetNotFound()
        return self.index_file
