"""Named-part access to an OOXML spreadsheet container."""

from __future__ import annotations

import posixpath
import zipfile
import zlib
from pathlib import Path
from typing import IO, Any, BinaryIO

from xlsx_extract.utils.exceptions import (
    ArchiveNotFoundError,
    CorruptArchiveError,
    MissingPartError,
)
from xlsx_extract.utils.logging import get_logger

logger = get_logger(__name__)

ROOT_RELS_PART = "_rels/.rels"
DEFAULT_WORKBOOK_PART = "xl/workbook.xml"


def normalize_part_name(name: str) -> str:
    """Normalize a part name to the form used for lookup inside the ZIP."""
    name = name.replace("\\", "/").lstrip("/")
    return posixpath.normpath(name) if name else name


def rels_part_for(part_name: str) -> str:
    """Return the relationships part that belongs to `part_name`.

    >>> rels_part_for("xl/workbook.xml")
    'xl/_rels/workbook.xml.rels'
    """
    directory, filename = posixpath.split(normalize_part_name(part_name))
    return posixpath.join(directory, "_rels", f"{filename}.rels")


def resolve_target(base_part: str, target: str) -> str:
    """Resolve a relationship target against the part that declares it."""
    target = target.replace("\\", "/")
    if target.startswith("/"):
        return normalize_part_name(target)
    base_dir = posixpath.dirname(normalize_part_name(base_part))
    return normalize_part_name(posixpath.join(base_dir, target))


class _PartStream:
    """Read-only wrapper that reports decompression failures as corruption."""

    def __init__(self, raw: IO[bytes], part_name: str, archive_path: str | None) -> None:
        self._raw = raw
        self.name = part_name
        self._archive_path = archive_path

    def read(self, size: int = -1) -> bytes:
        try:
            return self._raw.read(size)
        except (zipfile.BadZipFile, zlib.error, EOFError) as e:
            raise CorruptArchiveError(
                f"Failed to read part {self.name}: {e}",
                archive_path=self._archive_path,
                part_name=self.name,
            ) from e

    def close(self) -> None:
        self._raw.close()

    def __enter__(self) -> _PartStream:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


class XLSXArchive:
    """Opens a spreadsheet container and exposes its parts by name.

    Accepts a filesystem path or a seekable binary stream. Use as a context
    manager so the underlying ZIP handle is released on completion, on error
    and when a consumer stops iterating early.
    """

    def __init__(self, source: str | Path | BinaryIO) -> None:
        if isinstance(source, (str, Path)):
            path = Path(source)
            self.source_name = str(path)
            if not path.exists():
                raise ArchiveNotFoundError(str(path))
            if not path.is_file():
                raise CorruptArchiveError(
                    f"Not a regular file: {path}", archive_path=str(path)
                )
            zip_source: Any = path
        else:
            self.source_name = getattr(source, "name", None) or "<stream>"
            zip_source = source

        try:
            self._zip = zipfile.ZipFile(zip_source)
        except (zipfile.BadZipFile, zlib.error, EOFError, OSError) as e:
            raise CorruptArchiveError(
                f"Cannot read spreadsheet container: {e}",
                archive_path=self.source_name,
            ) from e

        self._names = {normalize_part_name(name): name for name in self._zip.namelist()}
        self._folded = {name.lower(): name for name in self._names}
        logger.debug("Opened archive", source=self.source_name, parts=len(self._names))

    @property
    def part_names(self) -> list[str]:
        return list(self._names)

    def find_part(self, part_name: str) -> str | None:
        """Return the archive entry name for `part_name`, tolerating case."""
        normalized = normalize_part_name(part_name)
        if normalized in self._names:
            return self._names[normalized]
        folded = self._folded.get(normalized.lower())
        return self._names[folded] if folded is not None else None

    def has_part(self, part_name: str) -> bool:
        return self.find_part(part_name) is not None

    def open_part(self, part_name: str) -> _PartStream:
        """Open a part for streaming reads.

        Raises:
            MissingPartError: If the part does not exist.
            CorruptArchiveError: If the entry header cannot be read.
        """
        entry = self.find_part(part_name)
        if entry is None:
            raise MissingPartError(part_name, archive_path=self.source_name)
        try:
            raw = self._zip.open(entry, "r")
        except (zipfile.BadZipFile, zlib.error, EOFError, NotImplementedError) as e:
            raise CorruptArchiveError(
                f"Cannot open part {part_name}: {e}",
                archive_path=self.source_name,
                part_name=part_name,
            ) from e
        return _PartStream(raw, normalize_part_name(part_name), self.source_name)

    def open_optional_part(self, part_name: str) -> _PartStream | None:
        """Open a part that may legitimately be absent."""
        if not self.has_part(part_name):
            return None
        return self.open_part(part_name)

    def read_part(self, part_name: str) -> bytes:
        with self.open_part(part_name) as stream:
            return stream.read()

    def close(self) -> None:
        self._zip.close()
        logger.debug("Closed archive", source=self.source_name)

    def __enter__(self) -> XLSXArchive:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
