"""Helpers for writing hand-made XLSX packages in tests.

The builders write the minimal set of parts a reader needs, with the markup
under full control of the test.

Example usage:
    from tests.fixtures import build_xlsx, sheet_xml

    path = build_xlsx(tmp_path / "book.xlsx", [("Data", sheet_xml("<row r='1'/>"))])
"""

import zipfile
from collections.abc import Sequence
from pathlib import Path

MAIN_NS = "http://schemas.openxmlformats.org/spreadsheetml/2006/main"
REL_NS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
PKG_REL_NS = "http://schemas.openxmlformats.org/package/2006/relationships"

XML_DECL = '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'

ROOT_RELS = (
    f'{XML_DECL}<Relationships xmlns="{PKG_REL_NS}">'
    f'<Relationship Id="rId1" Type="{REL_NS}/officeDocument" Target="xl/workbook.xml"/>'
    "</Relationships>"
)

DATE_STYLES = (
    f'{XML_DECL}<styleSheet xmlns="{MAIN_NS}">'
    '<numFmts count="2">'
    '<numFmt numFmtId="164" formatCode="yyyy\\-mm\\-dd"/>'
    '<numFmt numFmtId="165" formatCode="0.000"/>'
    "</numFmts>"
    '<cellStyleXfs count="1"><xf numFmtId="14"/></cellStyleXfs>'
    '<cellXfs count="4">'
    '<xf numFmtId="0"/><xf numFmtId="14" applyNumberFormat="1"/>'
    '<xf numFmtId="164" applyNumberFormat="1"/><xf numFmtId="165" applyNumberFormat="1"/>'
    "</cellXfs>"
    "</styleSheet>"
)


def sheet_xml(rows: str) -> str:
    """Wrap row markup into a worksheet part."""
    return (
        f'{XML_DECL}<worksheet xmlns="{MAIN_NS}" xmlns:r="{REL_NS}">'
        f'<dimension ref="A1"/><sheetData>{rows}</sheetData>'
        '<pageMargins left="0.7" right="0.7" top="0.75" bottom="0.75" header="0.3" footer="0.3"/>'
        "</worksheet>"
    )


def shared_strings_xml(items: Sequence[str]) -> str:
    """Build a sharedStrings part from raw `<si>` inner markup."""
    body = "".join(f"<si>{item}</si>" for item in items)
    return f'{XML_DECL}<sst xmlns="{MAIN_NS}" count="{len(items)}">{body}</sst>'


def build_xlsx(
    path: Path,
    sheets: Sequence[tuple[str, str]],
    shared_strings: Sequence[str] | None = None,
    styles: str | None = None,
    date1904: bool = False,
    workbook_xml: str | None = None,
    skip_parts: Sequence[str] = (),
) -> Path:
    """Write a minimal XLSX package with hand-written parts.

    Sheet n (1-based) is stored at `xl/worksheets/sheet{n}.xml` under
    relationship id `rId{n}`.
    """
    sheet_entries = "".join(
        f'<sheet name="{name}" sheetId="{n}" r:id="rId{n}"/>'
        for n, (name, _) in enumerate(sheets, start=1)
    )
    workbook_pr = '<workbookPr date1904="1"/>' if date1904 else "<workbookPr/>"
    if workbook_xml is None:
        workbook_xml = (
            f'{XML_DECL}<workbook xmlns="{MAIN_NS}" xmlns:r="{REL_NS}">'
            f"{workbook_pr}<sheets>{sheet_entries}</sheets></workbook>"
        )

    rels = [
        f'<Relationship Id="rId{n}" Type="{REL_NS}/worksheet" '
        f'Target="worksheets/sheet{n}.xml"/>'
        for n in range(1, len(sheets) + 1)
    ]
    if shared_strings is not None:
        rels.append(
            f'<Relationship Id="rId100" Type="{REL_NS}/sharedStrings" '
            'Target="sharedStrings.xml"/>'
        )
    if styles is not None:
        rels.append(
            f'<Relationship Id="rId101" Type="{REL_NS}/styles" Target="styles.xml"/>'
        )
    workbook_rels = (
        f'{XML_DECL}<Relationships xmlns="{PKG_REL_NS}">{"".join(rels)}</Relationships>'
    )

    parts: dict[str, str] = {
        "[Content_Types].xml": f"{XML_DECL}<Types/>",
        "_rels/.rels": ROOT_RELS,
        "xl/workbook.xml": workbook_xml,
        "xl/_rels/workbook.xml.rels": workbook_rels,
    }
    for n, (_, xml) in enumerate(sheets, start=1):
        parts[f"xl/worksheets/sheet{n}.xml"] = xml
    if shared_strings is not None:
        parts["xl/sharedStrings.xml"] = shared_strings_xml(shared_strings)
    if styles is not None:
        parts["xl/styles.xml"] = styles

    with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, content in parts.items():
            if name not in skip_parts:
                zf.writestr(name, content)
    return path


