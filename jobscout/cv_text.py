"""Plain text from a CV file: PDF (pypdf), DOCX (zip + XML) or TXT."""
from __future__ import annotations

import re
import zipfile
from pathlib import Path
from xml.etree import ElementTree

from pypdf import PdfReader

from jobscout.log import get_logger

log = get_logger(__name__)

_WORD_NS = "{http://schemas.openxmlformats.org/wordprocessingml/2006/main}"


def extract_text(path: Path) -> str:
    suffix = path.suffix.lower()
    if suffix in (".txt", ".md"):
        return path.read_text(encoding="utf-8", errors="ignore")
    if suffix == ".docx":
        return _docx_text(path)
    if suffix == ".pdf":
        return _pdf_text(path)
    raise ValueError(f"Unsupported CV format: {suffix}")


def _respace(text: str) -> str:
    """Undo words glued together by PDF extraction (``SeniorEngineerat`` → ``Senior Engineer at``)."""
    if not text or len(text) < 50 or text.count(" ") / len(text) > 0.08:
        return text
    text = re.sub(r"([a-z])([A-Z])", r"\1 \2", text)
    text = re.sub(r"([a-zA-Z])(\d)", r"\1 \2", text)
    return re.sub(r"([.!?,;:])([A-Za-z])", r"\1 \2", text)


def _pdf_text(path: Path) -> str:
    reader = PdfReader(str(path))
    pages = [_respace(page.extract_text() or "") for page in reader.pages]
    log.debug("Read %d PDF pages from %s", len(pages), path.name)
    return "\n".join(pages)


def _docx_text(path: Path) -> str:
    paragraphs: list[str] = []
    with zipfile.ZipFile(path) as zf, zf.open("word/document.xml") as f:
        for para in ElementTree.parse(f).iter(f"{_WORD_NS}p"):
            runs = [node.text for node in para.iter(f"{_WORD_NS}t") if node.text]
            if runs:
                paragraphs.append("".join(runs))
    return "\n".join(paragraphs)
