"""
Office document tool: CSV, Excel and PDF reading, Word writing.
"""

from __future__ import annotations

import asyncio
import csv
import zipfile
from pathlib import Path
from typing import Any, Literal, Optional

import docx
import openpyxl
from openpyxl.utils.exceptions import InvalidFileException
from pydantic import BaseModel, Field
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from toolwarden.errors import ExecutionFailedError, MissingArgumentError
from toolwarden.permissions.types import PermissionType
from toolwarden.tools.base import Tool, ToolContext, ToolResult, validate_relative_path

MAX_ROWS = 1000
MAX_PDF_CHARS = 100_000

Operation = Literal["read_csv", "read_excel", "read_pdf", "write_docx"]

_READ_ERRORS = (OSError, UnicodeDecodeError, csv.Error, zipfile.BadZipFile, InvalidFileException, PdfReadError, KeyError)


class OfficeArgs(BaseModel):
    operation: Operation = Field(description="The document operation to perform")
    path: str = Field(description="Path relative to the workspace")
    content: Optional[str] = Field(default=None, description="Text for write_docx, one paragraph per line")


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def read_csv(path: Path) -> ToolResult:
    with path.open(newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        rows: list[dict[str, str]] = []
        truncated = False
        for row in reader:
            if len(rows) >= MAX_ROWS:
                truncated = True
                break
            rows.append({str(k): (v or "") for k, v in row.items() if k is not None})
    return {"rows": rows, "truncated": truncated}


def read_excel(path: Path) -> ToolResult:
    """Read the first sheet; the first row supplies the column headers."""
    workbook = openpyxl.load_workbook(path, read_only=True, data_only=True)
    try:
        sheet = workbook.worksheets[0] if workbook.worksheets else None
        if sheet is None:
            raise ExecutionFailedError("No sheets found")

        rows: list[dict[str, str]] = []
        headers: list[str] = []
        truncated = False
        for i, values in enumerate(sheet.iter_rows(values_only=True)):
            if i == 0:
                headers = [_cell_text(v) for v in values]
                continue
            if len(rows) >= MAX_ROWS:
                truncated = True
                break
            rows.append({h: _cell_text(v) for h, v in zip(headers, values)})
        return {"sheet": sheet.title, "rows": rows, "truncated": truncated}
    finally:
        workbook.close()


def read_pdf(path: Path) -> ToolResult:
    reader = PdfReader(str(path))
    text = "\n".join(page.extract_text() or "" for page in reader.pages)
    truncated = len(text) > MAX_PDF_CHARS
    if truncated:
        text = text[:MAX_PDF_CHARS]
    return {"text": text, "pages": len(reader.pages), "truncated": truncated}


def write_docx(path: Path, content: str) -> ToolResult:
    document = docx.Document()
    for line in content.splitlines():
        document.add_paragraph(line)
    path.parent.mkdir(parents=True, exist_ok=True)
    document.save(str(path))
    return {"message": "Document created successfully"}


class OfficeTool(Tool):
    name = "office"
    description = (
        "Read content from office files (CSV, Excel, PDF) or write a Word document. "
        "Supported formats: .csv, .xlsx, .pdf, .docx"
    )
    args_model = OfficeArgs

    def __init__(self, workspace: Path | str) -> None:
        self.workspace = Path(workspace)

    def validate_args(self, args: OfficeArgs) -> None:  # type: ignore[override]
        validate_relative_path(args.path)
        if args.operation == "write_docx" and args.content is None:
            raise MissingArgumentError("content")

    async def execute(self, args: OfficeArgs, context: ToolContext) -> ToolResult:  # type: ignore[override]
        writing = args.operation == "write_docx"
        await context.require_permission(
            PermissionType.FILESYSTEM_WRITE if writing else PermissionType.FILESYSTEM_READ,
            f"Agent wants to {args.operation.replace('_', ' ')} office file at {args.path}",
            resource=args.path,
            operation=args.operation,
        )

        target = self.workspace / args.path
        if not writing and not target.is_file():
            raise ExecutionFailedError(f"File not found: {args.path}")

        try:
            if args.operation == "read_csv":
                return await asyncio.to_thread(read_csv, target)
            if args.operation == "read_excel":
                return await asyncio.to_thread(read_excel, target)
            if args.operation == "read_pdf":
                return await asyncio.to_thread(read_pdf, target)
            return await asyncio.to_thread(write_docx, target, args.content or "")
        except _READ_ERRORS as e:
            raise ExecutionFailedError(f"{args.operation} failed: {e}") from e

    def needs_summarization(self, args: OfficeArgs, result: ToolResult) -> bool:  # type: ignore[override]
        return args.operation != "write_docx"
