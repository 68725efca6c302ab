"""Minimal WordprocessingML (.docx) writer.

A package produced here has exactly three parts: the content-type manifest,
the root relationships and ``word/document.xml``. That is the smallest set
Word and LibreOffice open without a repair prompt; styles, settings and
document properties are left out on purpose so the output stays byte-stable.
"""

from __future__ import annotations

import re
import zipfile
from pathlib import Path
from typing import List, Sequence, Union
from xml.sax.saxutils import escape

from wiki2docx.core.errors import DocumentWriteError
from wiki2docx.core.utils import ensure_directory, safe_filename
from wiki2docx.infra.logging import get_unified_logger

DOCX_SUFFIX = ".docx"

CONTENT_TYPES_PART = "[Content_Types].xml"
ROOT_RELS_PART = "_rels/.rels"
DOCUMENT_PART = "word/document.xml"

W_NS = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"

CONTENT_TYPES_XML = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">
  <Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>
  <Default Extension="xml" ContentType="application/xml"/>
  <Override PartName="/word/document.xml" ContentType="application/vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml"/>
</Types>"""

ROOT_RELS_XML = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">
  <Relationship Id="rId1" Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/officeDocument" Target="word/document.xml"/>
</Relationships>"""

# run sizes are in half-points: 24pt title, 12pt body
_TITLE_PARAGRAPH = (
    '<w:p><w:r><w:rPr><w:b/><w:sz w:val="48"/></w:rPr>'
    '<w:t xml:space="preserve">{text}</w:t></w:r></w:p>'
)
_BODY_PARAGRAPH = (
    '<w:p><w:pPr><w:jc w:val="both"/></w:pPr><w:r><w:rPr><w:sz w:val="24"/></w:rPr>'
    '<w:t xml:space="preserve">{text}</w:t></w:r></w:p>'
)
# US Letter, 1 inch margins (twips)
_SECTION = (
    '<w:sectPr><w:pgSz w:w="12240" w:h="15840"/>'
    '<w:pgMar w:top="1440" w:right="1440" w:bottom="1440" w:left="1440" '
    'w:header="708" w:footer="708" w:gutter="0"/></w:sectPr>'
)

_PARAGRAPH_BREAK = re.compile(r"\n{2,}")
_XML_ILLEGAL = re.compile("[^\u0009\u000a\u000d -\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")

_log = get_unified_logger("export", "docx")


def xml_text(s: str) -> str:
    """Escape text for element content; characters XML 1.0 forbids become U+FFFD."""
    s = _XML_ILLEGAL.sub("\ufffd", s)
    return escape(s, {'"': "&quot;", "'": "&apos;"})


def split_paragraphs(content: str) -> List[str]:
    """Split on blank lines, drop empty chunks and fold single newlines into spaces.

    >>> split_paragraphs("A\\n\\nB\\nC\\n\\n\\n\\nD")
    ['A', 'B C', 'D']
    """
    out: List[str] = []
    for chunk in _PARAGRAPH_BREAK.split(content or ""):
        chunk = chunk.strip()
        if not chunk:
            continue
        out.append(chunk.replace("\n", " "))
    return out


def build_document_xml(title: str, paragraphs: Sequence[str]) -> str:
    parts = [
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>',
        f'<w:document xmlns:w="{W_NS}">',
        "<w:body>",
        _TITLE_PARAGRAPH.format(text=xml_text(title)),
    ]
    parts.extend(_BODY_PARAGRAPH.format(text=xml_text(p)) for p in paragraphs)
    parts.append(_SECTION)
    parts.append("</w:body></w:document>")
    return "".join(parts)


def write_docx(path: Union[str, Path], title: str, paragraphs: Sequence[str]) -> None:
    """Write the three-part package to ``path``; a partial file is removed on failure."""
    p = Path(path)
    entries = (
        (CONTENT_TYPES_PART, CONTENT_TYPES_XML),
        (ROOT_RELS_PART, ROOT_RELS_XML),
        (DOCUMENT_PART, build_document_xml(title, paragraphs)),
    )
    try:
        with zipfile.ZipFile(p, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for name, data in entries:
                zf.writestr(name, data)
    except (OSError, zipfile.BadZipFile, zipfile.LargeZipFile) as e:
        p.unlink(missing_ok=True)
        raise DocumentWriteError(f"save docx {p.name}: {e}") from e


def build_document(title: str, content: str, out_dir: Union[str, Path]) -> Path:
    """Write ``{out_dir}/{safe title}.docx`` for one article and return its path.

    Raises:
        DocumentWriteError: the directory, file or an archive entry could not be written.
    """
    try:
        base = ensure_directory(out_dir)
    except OSError as e:
        raise DocumentWriteError(f"create output dir: {e}") from e

    paragraphs = split_paragraphs(content)
    path = base / (safe_filename(title) + DOCX_SUFFIX)
    write_docx(path, title, paragraphs)
    _log.debug("Exported DOCX: %s (%d paragraphs)", path, len(paragraphs))
    return path
