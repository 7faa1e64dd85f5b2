"""Source ingestion: concatenates supported files into one framed text blob."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from docloom.errors import DocloomError, PreconditionError

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS: tuple[str, ...] = (".md", ".txt", ".pdf")


class IngestError(DocloomError):
    """A source file exists but could not be read."""


class Ingester:
    """Reads ``.md``/``.txt``/``.pdf`` files (recursively for directories).

    Each file is prefixed with a ``--- File: <path> ---`` header.  Unreadable
    files inside a directory are skipped with a warning; an explicitly named
    file that cannot be read is an error.
    """

    def __init__(self, extensions: Iterable[str] = DEFAULT_EXTENSIONS) -> None:
        self._extensions = {e.lower() if e.startswith(".") else f".{e.lower()}" for e in extensions}

    @property
    def extensions(self) -> frozenset[str]:
        return frozenset(self._extensions)

    def supports(self, path: Path) -> bool:
        return path.suffix.lower() in self._extensions

    def ingest(self, sources: Iterable[str | Path]) -> str:
        parts: list[str] = []
        for source in sources:
            path = Path(source)
            if not path.exists():
                raise PreconditionError(f"Source not found: {path}")
            if path.is_dir():
                for file in sorted(p for p in path.rglob("*") if p.is_file()):
                    if not self.supports(file):
                        continue
                    try:
                        parts.append(self._frame(file))
                    except IngestError as exc:
                        logger.warning("Skipping %s: %s", file, exc)
            elif self.supports(path):
                parts.append(self._frame(path))
            else:
                logger.warning("File type not supported for ingestion: %s", path)

        if not parts:
            raise PreconditionError("No supported files found in the provided sources")
        content = "\n\n".join(parts)
        logger.info("Ingested %d file(s), %d characters", len(parts), len(content))
        return content

    def _frame(self, path: Path) -> str:
        text = self.read_file(path)
        logger.debug("Ingested %s (%d chars)", path, len(text))
        return f"--- File: {path} ---\n{text}"

    def read_file(self, path: Path) -> str:
        if path.suffix.lower() == ".pdf":
            return extract_pdf_text(path)
        try:
            return path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            raise IngestError(str(exc)) from exc


def extract_pdf_text(path: Path) -> str:
    """Extract the text layer of every page with PyMuPDF."""
    import fitz

    try:
        doc = fitz.open(str(path))
    except (RuntimeError, OSError, ValueError) as exc:
        raise IngestError(f"cannot open PDF: {exc}") from exc
    try:
        chunks = [page.get_text() for page in doc]
    except (RuntimeError, ValueError) as exc:
        raise IngestError(f"cannot read PDF text: {exc}") from exc
    finally:
        doc.close()

    text = "\n".join(chunks)
    if not text.strip():
        logger.warning("PDF extraction produced empty text: %s", path)
    return text
