"""Container writers turning a volume's pages into one output file."""
from __future__ import annotations

import abc
import datetime
from pathlib import Path
from typing import List

from ..types_ import Direction, EbookMetadata, FileFormat


class Generator(abc.ABC):
    """One output container being assembled.

    Call order: optional `set_cover`, then `start_chapter`/`add_page` for
    every chapter and page in reading order, `set_metadata`, and `save`.
    """

    extension = ""
    requires_cover = False

    def __init__(self, output_dir: Path, base_name: str, direction: Direction = Direction.LTR):
        self.output_path = Path(output_dir) / f"{base_name}.{self.extension}"
        self.direction = direction
        self.page_count = 0

    @abc.abstractmethod
    def set_cover(self, image: Path) -> None:
        ...

    def start_chapter(self, title: str) -> None:
        """Mark the beginning of a chapter; following pages belong to it."""

    @abc.abstractmethod
    def add_page(self, image: Path) -> None:
        ...

    @abc.abstractmethod
    def set_metadata(
        self,
        metadata: EbookMetadata,
        volume_number: int,
        total_pages: int,
        chapter_titles: List[str],
    ) -> None:
        ...

    @abc.abstractmethod
    def save(self) -> Path:
        ...

    def discard(self) -> None:
        """Drop a partially written container after a failure."""


def release_date(metadata: EbookMetadata) -> datetime.datetime:
    return metadata.release_date or datetime.datetime.now()


def create_generator(
    output_format: FileFormat,
    output_dir: Path,
    base_name: str,
    direction: Direction = Direction.LTR,
) -> Generator:
    """Return the writer for `output_format`."""
    if output_format == FileFormat.CBZ:
        from .cbz import CbzGenerator

        return CbzGenerator(output_dir, base_name, direction)
    if output_format == FileFormat.EPUB:
        from .epub import EpubGenerator

        return EpubGenerator(output_dir, base_name, direction)
    raise ValueError(f"unknown output format: {output_format}")

