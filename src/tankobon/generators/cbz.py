"""CBZ writer: a zip of numbered page images plus a ComicInfo.xml sidecar."""
from __future__ import annotations

import logging
import zipfile
from pathlib import Path
from typing import List, Optional
from xml.sax.saxutils import escape

from ..core import get_file_info
from ..errors import ContainerError
from ..types_ import Direction, EbookMetadata
from . import Generator, release_date

logger = logging.getLogger(__name__)


def comic_info_xml(
    metadata: EbookMetadata,
    volume_number: int,
    total_pages: int,
    chapter_titles: List[str],
    direction: Direction = Direction.LTR,
) -> str:
    """Render the ComicInfo.xml document for one volume.

    >>> xml = comic_info_xml(EbookMetadata(title='A & B', language='es'), 2, 10, ['Ch 1'])
    >>> '<Title>A &amp; B</Title>' in xml, '<Number>2</Number>' in xml
    (True, True)
    >>> '<LanguageISO>es</LanguageISO>' in xml, '<PageCount>10</PageCount>' in xml
    (True, True)
    """

    def tag(name: str, value: Optional[object]) -> str:
        if value is None or value == "":
            return ""
        return f"    <{name}>{escape(str(value))}</{name}>\n"

    date = release_date(metadata)
    creators = ", ".join(metadata.authors) or None
    notes = []
    if chapter_titles:
        notes.append("Chapters: " + ", ".join(chapter_titles))
    notes.extend(f"{k}: {v}" for k, v in metadata.custom_fields.items())

    body = "".join(
        [
            tag("Title", metadata.title),
            tag("Series", metadata.series or metadata.title),
            tag("Number", volume_number),
            tag("Summary", metadata.description),
            tag("Notes", "\n".join(notes) or None),
            tag("Year", date.year),
            tag("Month", date.month),
            tag("Day", date.day),
            tag("Writer", creators),
            tag("Penciller", creators),
            tag("Inker", creators),
            tag("Colorist", creators),
            tag("Letterer", creators),
            tag("Publisher", metadata.publisher),
            tag("Genre", metadata.genre),
            tag("Tags", ", ".join(metadata.tags) or None),
            tag("Web", metadata.web),
            tag("PageCount", total_pages),
            tag("LanguageISO", metadata.language),
            tag("GTIN", metadata.identifier),
            tag("Manga", "YesAndRightToLeft" if direction == Direction.RTL else "Yes"),
        ]
    )
    return (
        '<?xml version="1.0" encoding="utf-8"?>\n'
        '<ComicInfo xmlns:xsd="http://www.w3.org/2001/XMLSchema" '
        'xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance">\n'
        f"{body}</ComicInfo>\n"
    )


class CbzGenerator(Generator):
    extension = "cbz"

    def __init__(self, output_dir: Path, base_name: str, direction: Direction = Direction.LTR):
        super().__init__(output_dir, base_name, direction)
        self._zip = zipfile.ZipFile(self.output_path, "w", compression=zipfile.ZIP_DEFLATED)
        self._comic_info: Optional[str] = None

    def set_cover(self, image: Path) -> None:
        ext, _ = get_file_info(image)
        self._zip.write(image, f"000_cover.{ext}")

    def add_page(self, image: Path) -> None:
        ext, _ = get_file_info(image)
        self.page_count += 1
        self._zip.write(image, f"page_{self.page_count:03d}.{ext}")

    def set_metadata(self, metadata, volume_number, total_pages, chapter_titles) -> None:
        self._comic_info = comic_info_xml(
            metadata, volume_number, total_pages, chapter_titles, self.direction
        )

    def save(self) -> Path:
        try:
            if self._comic_info is not None:
                self._zip.writestr("ComicInfo.xml", self._comic_info)
        except (OSError, ValueError) as e:
            raise ContainerError(f"cannot write {self.output_path}: {e}") from e
        finally:
            self._zip.close()
        logger.debug(f"[cbz] wrote {self.output_path} ({self.page_count} pages)")
        return self.output_path

    def discard(self) -> None:
        self._zip.close()
        self.output_path.unlink(missing_ok=True)
