"""Document loader for plain-text and PDF legal documents.

Handles:
- File discovery under the documents directory
- UTF-8 text reading
- Page-by-page PDF text extraction
"""
from pathlib import Path
from typing import List
from dataclasses import dataclass
from pypdf import PdfReader
import structlog

logger = structlog.get_logger()

SUPPORTED_SUFFIXES = (".txt", ".pdf")


@dataclass(frozen=True)
class LoadedDocument:
    """Raw text extracted from one source file."""

    source_id: str
    path: Path
    text: str
    page_count: int = 1


class DocumentLoader:
    """Reads text and PDF files from a directory."""

    def __init__(self, documents_dir: Path):
        self.documents_dir = Path(documents_dir)

    def discover_files(self) -> List[Path]:
        """Discover all supported files in the documents directory.

        Returns:
            Sorted list of file paths

        Raises:
            FileNotFoundError: If the documents directory doesn't exist
        """
        if not self.documents_dir.is_dir():
            raise FileNotFoundError(f"Documents directory not found: {self.documents_dir}")

        files = sorted(
            path
            for path in self.documents_dir.rglob("*")
            if path.is_file() and path.suffix.lower() in SUPPORTED_SUFFIXES
        )

        logger.info(
            "documents_discovered",
            count=len(files),
            documents_dir=str(self.documents_dir),
        )

        return files

    def load_file(self, file_path: Path) -> LoadedDocument:
        """Extract the text of a single file.

        Raises:
            ValueError: If the file type is not supported
            UnicodeDecodeError: If a text file is not valid UTF-8
        """
        suffix = file_path.suffix.lower()
        source_id = self._source_id(file_path)

        if suffix == ".txt":
            text = file_path.read_text(encoding="utf-8")
            return LoadedDocument(source_id=source_id, path=file_path, text=text)

        if suffix == ".pdf":
            return self._load_pdf(file_path, source_id)

        raise ValueError(f"Unsupported document type: {file_path.suffix}")

    def _load_pdf(self, file_path: Path, source_id: str) -> LoadedDocument:
        reader = PdfReader(str(file_path))

        pages = []
        for page_number, page in enumerate(reader.pages, 1):
            page_text = (page.extract_text() or "").strip()
            if not page_text:
                logger.debug("pdf_page_without_text", path=str(file_path), page=page_number)
                continue
            pages.append(page_text)

        logger.debug(
            "pdf_text_extracted",
            path=str(file_path),
            page_count=len(reader.pages),
            pages_with_text=len(pages),
        )

        return LoadedDocument(
            source_id=source_id,
            path=file_path,
            text="\n\n".join(pages),
            page_count=len(reader.pages),
        )

    def _source_id(self, file_path: Path) -> str:
        try:
            return file_path.relative_to(self.documents_dir).as_posix()
        except ValueError:
            return file_path.name
