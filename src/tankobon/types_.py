from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, NamedTuple, Optional, Tuple, TypeAlias

# A chapter is an ordered list of page image paths; a volume is an ordered
# list of chapters.
Chapter: TypeAlias = List[Path]
Volume: TypeAlias = List[Chapter]

# Comparator over two paths, returning a negative, zero or positive int
# (the same contract as `functools.cmp_to_key` expects).
PathSorter: TypeAlias = Callable[[Path, Path], int]


class VolumeGroupingStrategy(str, Enum):
    NAME = "name"
    IMAGE_ANALYSIS = "image_analysis"
    MANUAL = "manual"
    FLAT = "flat"


class CollectionDepth(str, Enum):
    DEEP = "deep"
    SHALLOW = "shallow"


class FileFormat(str, Enum):
    CBZ = "cbz"
    EPUB = "epub"


class Direction(str, Enum):
    LTR = "ltr"
    RTL = "rtl"


class ExecutionMode(Enum):
    FROM_SOURCE = "from_source"
    FROM_COLLECTED_DATA = "from_collected_data"
    FROM_STRUCTURED_DATA = "from_structured_data"


class Severity(str, Enum):
    POSITIVE = "positive"
    WARNING = "warning"
    NEGATIVE = "negative"


class FindingKind(str, Enum):
    CONSISTENT_NAMING = "consistent_naming"
    MISSING_NUMERIC_IDENTIFIER = "missing_numeric_identifier"
    UNSUPPORTED_FILE_IGNORED = "unsupported_file_ignored"
    INCONSISTENT_PAGE_COUNT = "inconsistent_page_count"
    PERMISSION_DENIED = "permission_denied"
    SPECIAL_CHARACTERS_IN_PATH = "special_characters_in_path"
    UNUSUAL_FILE_SIZE = "unusual_file_size"
    NO_CHAPTERS_FOUND = "no_chapters_found"
    NO_PAGES_FOUND = "no_pages_found"


SEVERITIES: Dict[FindingKind, Severity] = {
    FindingKind.CONSISTENT_NAMING: Severity.POSITIVE,
    FindingKind.MISSING_NUMERIC_IDENTIFIER: Severity.WARNING,
    FindingKind.UNSUPPORTED_FILE_IGNORED: Severity.WARNING,
    FindingKind.INCONSISTENT_PAGE_COUNT: Severity.WARNING,
    FindingKind.PERMISSION_DENIED: Severity.NEGATIVE,
    FindingKind.SPECIAL_CHARACTERS_IN_PATH: Severity.WARNING,
    FindingKind.UNUSUAL_FILE_SIZE: Severity.WARNING,
    FindingKind.NO_CHAPTERS_FOUND: Severity.NEGATIVE,
    FindingKind.NO_PAGES_FOUND: Severity.NEGATIVE,
}


class AnalyzeFinding(NamedTuple):
    """A single observation made while scanning the source tree.

    `path` is the file or directory the finding is about (None for
    tree-wide findings) and `details` holds kind-specific values such as
    `expected`/`found` page counts or a file size in KiB.
    """

    kind: FindingKind
    path: Optional[Path] = None
    message: str = ""
    details: Tuple[Tuple[str, Any], ...] = ()

    @property
    def severity(self) -> Severity:
        return SEVERITIES[self.kind]

    def detail(self, key: str, default: Any = None) -> Any:
        return dict(self.details).get(key, default)


class AnalyzeReport(NamedTuple):
    findings: Tuple[AnalyzeFinding, ...]
    recommended_strategy: Optional[VolumeGroupingStrategy]

    def of_kind(self, kind: FindingKind) -> List[AnalyzeFinding]:
        return [f for f in self.findings if f.kind == kind]

    def has(self, kind: FindingKind) -> bool:
        return any(f.kind == kind for f in self.findings)


class CollectedContent(NamedTuple):
    """Chapters found in the source tree, their directories and the analysis report."""

    chapters: List[Chapter]
    chapter_dirs: List[Path]
    report: AnalyzeReport


class VolumeStructureReport(NamedTuple):
    total_chapters_processed: int
    total_volumes_created: int
    chapter_counts_per_volume: List[int]


class StructuredContent(NamedTuple):
    volumes: List[Volume]
    report: VolumeStructureReport


@dataclass
class EbookMetadata:
    """Descriptive metadata copied into every generated volume."""

    title: str
    series: Optional[str] = None
    authors: List[str] = field(default_factory=list)
    publisher: Optional[str] = None
    description: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    language: str = "en"
    rights: Optional[str] = None
    identifier: Optional[str] = None
    release_date: Optional[datetime.datetime] = None
    genre: Optional[str] = None
    web: Optional[str] = None
    custom_fields: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def default_with_title(cls, title: str) -> "EbookMetadata":
        return cls(title=title)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EbookMetadata":
        """Build metadata from a plain mapping (e.g. a parsed YAML document).

        `author` is accepted as a single-author alias of `authors`; a bare
        string is accepted for `authors` and `tags`. Unknown keys are ignored.

        >>> EbookMetadata.from_dict({'title': 'Akira', 'author': 'Otomo'}).authors
        ['Otomo']
        """
        title = data.get("title")
        if not title:
            raise ValueError("metadata requires a non-empty 'title'")

        authors = data.get("authors", data.get("author", []))
        if isinstance(authors, str):
            authors = [authors]
        tags = data.get("tags", [])
        if isinstance(tags, str):
            tags = [t.strip() for t in tags.split(",") if t.strip()]

        release = data.get("release_date")
        if isinstance(release, str):
            release = datetime.datetime.fromisoformat(release)
        elif isinstance(release, datetime.date) and not isinstance(release, datetime.datetime):
            release = datetime.datetime(release.year, release.month, release.day)

        custom = data.get("custom_fields") or {}
        return cls(
            title=str(title),
            series=data.get("series"),
            authors=[str(a) for a in authors],
            publisher=data.get("publisher"),
            description=data.get("description"),
            tags=[str(t) for t in tags],
            language=data.get("language") or "en",
            rights=data.get("rights"),
            identifier=data.get("identifier"),
            release_date=release,
            genre=data.get("genre"),
            web=data.get("web"),
            custom_fields={str(k): str(v) for k, v in custom.items()},
        )


@dataclass(frozen=True)
class CoverOptions:
    """Cover image selection: none, one image for every volume, or one per volume index."""

    single: Optional[Path] = None
    per_volume: Mapping[int, Path] = field(default_factory=dict)

    @classmethod
    def none(cls) -> "CoverOptions":
        return cls()

    @classmethod
    def single_image(cls, path: Path) -> "CoverOptions":
        return cls(single=Path(path))

    @classmethod
    def for_volumes(cls, covers: Mapping[int, Path]) -> "CoverOptions":
        return cls(per_volume={int(k): Path(v) for k, v in covers.items()})

    def cover_for(self, volume_index: int) -> Optional[Path]:
        """Return the cover for the 0-based `volume_index`, if any."""
        if self.single is not None:
            return self.single
        return self.per_volume.get(volume_index)
