"""EPUB writer: one fixed page per image, grouped by chapter in the TOC."""
from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import List, Optional, Tuple
from xml.sax.saxutils import escape, quoteattr

from ebooklib import epub

from ..core import get_file_info
from ..errors import ContainerError, UnsupportedFormatError
from ..types_ import Direction, EbookMetadata
from . import Generator, release_date

logger = logging.getLogger(__name__)

PAGE_CSS = """\
body { margin: 0; padding: 0; text-align: center; }
div.page { width: 100%; height: 100%; }
img { max-width: 100%; max-height: 100%; }
"""


def book_title(metadata: EbookMetadata, volume_number: int) -> str:
    """
    >>> book_title(EbookMetadata(title='Vagabond', series='Inoue'), 3)
    'Inoue - Vagabond Vol 3'
    >>> book_title(EbookMetadata(title='Vagabond'), 1)
    'Vagabond Vol 1'
    """
    title = f"{metadata.series} - {metadata.title}" if metadata.series else metadata.title
    return f"{title} Vol {volume_number}"


class EpubGenerator(Generator):
    extension = "epub"
    requires_cover = True

    def __init__(self, output_dir: Path, base_name: str, direction: Direction = Direction.LTR):
        super().__init__(output_dir, base_name, direction)
        self.book = epub.EpubBook()
        self.book.set_direction(direction.value)
        self._style = epub.EpubItem(
            uid="style_page", file_name="style/page.css", media_type="text/css", content=PAGE_CSS
        )
        self.book.add_item(self._style)
        self._spine: List[epub.EpubHtml] = []
        self._toc: List[epub.Link] = []
        self._chapter_index = 0
        self._chapter_page = 0
        self._chapter_title: Optional[str] = None
        self._has_cover = False

    def set_cover(self, image: Path) -> None:
        ext, _ = get_file_info(image)
        self.book.set_cover(f"images/cover.{ext}", Path(image).read_bytes())
        self._has_cover = True

    def start_chapter(self, title: str) -> None:
        self._chapter_index += 1
        self._chapter_page = 0
        self._chapter_title = title

    def add_page(self, image: Path) -> None:
        if self._chapter_index == 0:
            self.start_chapter(f"Chapter {self._chapter_index + 1}")
        ext, mime = get_file_info(image)
        self.page_count += 1
        self._chapter_page += 1
        stem = f"c{self._chapter_index:03d}_p{self._chapter_page:03d}"

        img_item = epub.EpubItem(
            uid=f"img_{stem}",
            file_name=f"images/{stem}.{ext}",
            media_type=mime,
            content=Path(image).read_bytes(),
        )
        self.book.add_item(img_item)

        page_title = f"{self._chapter_title} - {self._chapter_page}"
        page = epub.EpubHtml(
            uid=f"page_{stem}",
            title=page_title,
            file_name=f"pages/{stem}.xhtml",
        )
        page.content = (
            f"<html><head><title>{escape(page_title)}</title></head><body>"
            f'<div class="page"><img src="../images/{stem}.{ext}" alt={quoteattr(page_title)}/></div>'
            "</body></html>"
        )
        page.add_link(href="../style/page.css", rel="stylesheet", type="text/css")
        self.book.add_item(page)
        self._spine.append(page)
        if self._chapter_page == 1:
            self._toc.append(epub.Link(page.file_name, self._chapter_title, f"toc_{stem}"))

    def set_metadata(self, metadata, volume_number, total_pages, chapter_titles) -> None:
        book = self.book
        book.set_identifier(metadata.identifier or f"urn:uuid:{uuid.uuid4()}")
        book.set_title(book_title(metadata, volume_number))
        book.set_language(metadata.language)
        for author in metadata.authors:
            book.add_author(author)
        if metadata.description:
            book.add_metadata("DC", "description", metadata.description)
        if metadata.publisher:
            book.add_metadata("DC", "publisher", metadata.publisher)
        if metadata.rights:
            book.add_metadata("DC", "rights", metadata.rights)
        book.add_metadata("DC", "date", release_date(metadata).strftime("%Y-%m-%d"))
        for subject in metadata.tags + ([metadata.genre] if metadata.genre else []):
            book.add_metadata("DC", "subject", subject)
        if metadata.series:
            book.add_metadata(None, "meta", "", {"name": "calibre:series", "content": metadata.series})
            book.add_metadata(
                None, "meta", "", {"name": "calibre:series_index", "content": str(volume_number)}
            )
        extra: List[Tuple[str, str]] = list(metadata.custom_fields.items())
        extra.append(("page_count", str(total_pages)))
        for key, value in extra:
            book.add_metadata(None, "meta", "", {"name": key, "content": value})

    def save(self) -> Path:
        if not self._has_cover:
            raise UnsupportedFormatError("EPUB output requires a cover image")
        book = self.book
        book.toc = tuple(self._toc)
        book.add_item(epub.EpubNcx())
        book.add_item(epub.EpubNav())
        book.spine = ["cover"] + self._spine
        try:
            epub.write_epub(str(self.output_path), book, {})
        except (OSError, ValueError) as e:
            raise ContainerError(f"cannot write {self.output_path}: {e}") from e
        logger.debug(f"[epub] wrote {self.output_path} ({self.page_count} pages)")
        return self.output_path

    def discard(self) -> None:
        self.output_path.unlink(missing_ok=True)
