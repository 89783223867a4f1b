"""Leaf tools exposing the B3 and B4 Drive folders to the model."""

import asyncio
import json
import logging
from typing import Any

import httpx

from ..core import (
    BlobPart,
    CallContext,
    FunctionDeclaration,
    GenerationConfig,
    LeafTool,
    TextPart,
    ToolError,
    optional_str,
    require_str,
    require_str_list,
)
from .drive import GOOGLE_DOC_MIME_TYPE, DriveApp, DriveError
from .pdf import PdfError, extract_form, fill_form, merge_pdfs
from .prompts import READ_FILE_PROMPT, READ_FILE_QUESTION

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"
DOWNLOAD_TIMEOUT_SECONDS = 30.0


def _file_ids_schema(description: str) -> dict[str, Any]:
    return {
        "type": "array",
        "description": description,
        "items": {"type": "string"},
    }


class DriveTool(LeafTool):
    """A leaf tool backed by the Drive wrapper."""

    def __init__(self, app: DriveApp) -> None:
        super().__init__()
        self.app = app

    async def drive(self, method, *args: Any) -> Any:
        """Run a blocking Drive call in a worker thread; Drive failures become ToolError."""
        try:
            return await asyncio.to_thread(method, *args)
        except DriveError as e:
            raise ToolError(str(e)) from e


class B3FilesTool(DriveTool):
    def declare(self) -> FunctionDeclaration:
        return FunctionDeclaration(
            name="B3Files",
            description=(
                f"Fetches the most up-to-date index of all files in the user's {self.app.b3_folder} folder. "
                "Call this at the beginning of a new conversation or if you suspect the user added or "
                "changed files. For each file you get its unique ID (to talk to other tools), a human "
                "meaningful name (to talk to the user) and a description of the document nature, "
                "purpose and content."
            ),
        )

    async def run(self, context: CallContext, args: dict[str, Any]) -> Any:
        self.question(f"Fetch file list from {self.app.b3_folder} folder.")
        files = await self.drive(self.app.b3_files)
        self.response(f"Found {len(files)} files.")
        return [f.to_dict() for f in files]


class B4FilesTool(DriveTool):
    def declare(self) -> FunctionDeclaration:
        return FunctionDeclaration(
            name="B4Files",
            description=(
                f"Fetches the most up-to-date index of all files in the user's {self.app.b4_folder} folder. "
                "Call this at the beginning of a new conversation to figure out which procedures the user "
                "is working on and their status. For each file you get its unique ID, its name and a "
                "description of its nature, purpose, content and status."
            ),
        )

    async def run(self, context: CallContext, args: dict[str, Any]) -> Any:
        self.question(f"Fetch file list from {self.app.b4_folder} folder.")
        files = await self.drive(self.app.b4_files)
        self.response(f"Found {len(files)} files.")
        return [f.to_dict() for f in files]


class ReadFileTool(DriveTool):
    """Sends a file to a dedicated model call and returns its description."""

    def __init__(self, app: DriveApp, model: str, max_tokens: int = 4096) -> None:
        super().__init__(app)
        self.model = model
        self.max_tokens = max_tokens

    def declare(self) -> FunctionDeclaration:
        return FunctionDeclaration(
            name="ReadFile",
            description=(
                "Reads and extracts the full detailed content of a single, specific file. Use this when "
                "you need a deep analysis of a document, especially one with a missing or incomplete "
                "description."
            ),
            parameters={
                "type": "object",
                "properties": {
                    "file_id": {"type": "string", "description": "The unique ID of the file to read."},
                },
                "required": ["file_id"],
            },
        )

    async def run(self, context: CallContext, args: dict[str, Any]) -> Any:
        file_id = require_str(args, "file_id")
        self.question(f"Read file with ID: {file_id}")

        content, mime_type = await self.drive(self.app.get_file_content, file_id)
        config = GenerationConfig(system_instruction=READ_FILE_PROMPT, max_tokens=self.max_tokens)
        try:
            turn = await self.client.generate(
                context, self.model, config, TextPart(READ_FILE_QUESTION), BlobPart(mime_type, content)
            )
        except Exception as e:
            raise ToolError(f"analyzing content: {e}") from e

        if not turn.text:
            raise ToolError("received empty response from analysis")
        self.response("Successfully extracted and analyzed file content.")
        return turn.text


class UpdateFileTool(DriveTool):
    def declare(self) -> FunctionDeclaration:
        return FunctionDeclaration(
            name="UpdateFile",
            description=(
                "Updates the metadata (name and/or description) of a specific file. After analyzing a "
                "file's content, use this tool to save your findings: it permanently improves the "
                "knowledge base for all future conversations."
            ),
            parameters={
                "type": "object",
                "properties": {
                    "file_id": {"type": "string", "description": "The unique ID of the file to modify."},
                    "name": {"type": "string", "description": "The new name for the file."},
                    "description": {"type": "string", "description": "The new text for the file's description."},
                },
                "required": ["file_id"],
            },
            response={"type": "boolean", "description": "true on success."},
        )

    async def run(self, context: CallContext, args: dict[str, Any]) -> Any:
        file_id = require_str(args, "file_id")
        name = optional_str(args, "name")
        description = optional_str(args, "description")
        if not name and not description:
            raise ToolError("UpdateFile called without 'name' or 'description' to update.")

        updates = []
        if name:
            updates.append(f"name to '{name}'")
        if description:
            updates.append("description")
        self.question(f"Update file {file_id}: set {' and '.join(updates)}.")

        await self.drive(self.app.update_file, file_id, name, description)
        self.response("Successfully updated file metadata.")
        return True


class B4DeleteTool(DriveTool):
    def declare(self) -> FunctionDeclaration:
        return FunctionDeclaration(
            name="B4Delete",
            description=(
                f"Permanently deletes one or more files from the {self.app.b4_folder} folder. This action "
                f"is irreversible. Only files located inside {self.app.b4_folder} can be deleted."
            ),
            parameters={
                "type": "object",
                "properties": {
                    "file_ids": _file_ids_schema("The unique IDs of the files to delete."),
                },
                "required": ["file_ids"],
            },
        )

    async def run(self, context: CallContext, args: dict[str, Any]) -> Any:
        file_ids = require_str_list(args, "file_ids")
        self.question(f"Attempting to delete {len(file_ids)} file(s): {', '.join(file_ids)}")

        deleted = []
        warnings = []
        for file_id in file_ids:
            try:
                await asyncio.to_thread(self.app.delete_file, file_id)
            except DriveError as e:
                logger.warning(f"B4Delete: could not delete {file_id}: {e}")
                warnings.append(f"could not delete file {file_id}: {e}")
                continue
            deleted.append(file_id)

        output = f"Successfully deleted {len(deleted)} file(s)."
        if warnings:
            output = f"{output} Warnings: {'; '.join(warnings)}"
        self.response(output)
        return output


class B4MergeTool(DriveTool):
    def declare(self) -> FunctionDeclaration:
        return FunctionDeclaration(
            name="B4Merge",
            description=(
                f"Merges several PDF files into a new single PDF file inside the {self.app.b4_folder} "
                "folder. Use this to assemble a final document from multiple sources for an "
                "administrative procedure."
            ),
            parameters={
                "type": "object",
                "properties": {
                    "file_ids": _file_ids_schema("The unique IDs of the PDF files to merge, in order."),
                    "output_name": {"type": "string", "description": "The file name of the merged PDF."},
                    "output_description": {
                        "type": "string",
                        "description": "A detailed description of the merged PDF, its purpose and content.",
                    },
                },
                "required": ["file_ids", "output_name", "output_description"],
            },
        )

    async def run(self, context: CallContext, args: dict[str, Any]) -> Any:
        file_ids = require_str_list(args, "file_ids")
        output_name = require_str(args, "output_name")
        output_description = require_str(args, "output_description")
        self.question(
            f"Merge {len(file_ids)} files ({', '.join(file_ids)}) into new file '{output_name}'."
        )

        b4_folder_id = await self.drive(self.app.b4_folder_id)
        documents = []
        for file_id in file_ids:
            content, mime_type = await self.drive(self.app.get_file_content, file_id)
            if mime_type != PDF_MIME_TYPE:
                raise ToolError(f"file {file_id} is not a PDF ({mime_type}), cannot merge")
            documents.append(content)

        try:
            merged = await asyncio.to_thread(merge_pdfs, documents)
        except PdfError as e:
            raise ToolError(f"merging PDFs: {e}") from e

        new_file = await self.drive(
            self.app.create_file, output_name, output_description, PDF_MIME_TYPE, b4_folder_id, merged
        )
        output = (
            f"Successfully merged {len(file_ids)} files into new file '{new_file.name}' "
            f"(ID: {new_file.id}) in {self.app.b4_folder} folder."
        )
        self.response(output)
        return output


class ExtractFormTool(DriveTool):
    def declare(self) -> FunctionDeclaration:
        return FunctionDeclaration(
            name="ExtractForm",
            description=(
                "Extracts the form fields of a PDF file and returns them as a JSON string "
                '({"fields": [{"name", "type", "label", "value", "page"}]}). Use it to analyze a form '
                "before filling it with FillForm."
            ),
            parameters={
                "type": "object",
                "properties": {
                    "file_id": {
                        "type": "string",
                        "description": "The unique ID of the PDF file containing the form.",
                    },
                },
                "required": ["file_id"],
            },
        )

    async def run(self, context: CallContext, args: dict[str, Any]) -> Any:
        file_id = require_str(args, "file_id")
        self.question(f"Extracting form from file {file_id}")

        content, _ = await self.drive(self.app.get_file_content, file_id)
        try:
            form = await asyncio.to_thread(extract_form, content)
        except PdfError as e:
            raise ToolError(f"failed to export form data from PDF {file_id}: {e}") from e

        self.response(f"Successfully extracted {len(form['fields'])} form fields as JSON.")
        return json.dumps(form, default=str)


class FillFormTool(DriveTool):
    def declare(self) -> FunctionDeclaration:
        return FunctionDeclaration(
            name="FillForm",
            description=(
                "Fills a PDF form in place from a JSON string of form data, either the ExtractForm output "
                "with updated values or an object mapping field names to values. The original PDF file is "
                "updated with the filled data."
            ),
            parameters={
                "type": "object",
                "properties": {
                    "file_id": {"type": "string", "description": "The unique ID of the PDF file to fill."},
                    "form_data": {
                        "type": "string",
                        "description": "A JSON string with the form fields filled for the user.",
                    },
                },
                "required": ["file_id", "form_data"],
            },
        )

    async def run(self, context: CallContext, args: dict[str, Any]) -> Any:
        file_id = optional_str(args, "file_id")
        form_data = optional_str(args, "form_data")
        if not file_id or not form_data:
            raise ToolError("missing one or more required arguments: 'file_id', 'form_data'")
        try:
            values = json.loads(form_data)
        except json.JSONDecodeError as e:
            raise ToolError(f"'form_data' is not valid JSON: {e}") from e

        self.question(f"Filling form for file {file_id}")

        content, mime_type = await self.drive(self.app.get_file_content, file_id)
        try:
            filled, unknown = await asyncio.to_thread(fill_form, content, values)
        except PdfError as e:
            raise ToolError(f"failed to fill form for PDF {file_id}: {e}") from e

        await self.drive(self.app.update_file_content, file_id, mime_type, filled)
        output = f"Successfully filled and updated form for file {file_id}."
        if unknown:
            output = f"{output} Unknown fields ignored: {', '.join(unknown)}"
        self.response(output)
        return output


class CreateDocTool(DriveTool):
    def declare(self) -> FunctionDeclaration:
        return FunctionDeclaration(
            name="CreateDoc",
            description=(
                f"Creates a new Google Doc in the {self.app.b4_folder} folder from Markdown text. Useful "
                "for drafting letters or other documents that need further editing."
            ),
            parameters={
                "type": "object",
                "properties": {
                    "output_name": {"type": "string", "description": "The file name of the new Google Doc."},
                    "markdown_content": {
                        "type": "string",
                        "description": "The Markdown content to convert into the Google Doc.",
                    },
                },
                "required": ["output_name", "markdown_content"],
            },
        )

    async def run(self, context: CallContext, args: dict[str, Any]) -> Any:
        output_name = require_str(args, "output_name")
        markdown_content = require_str(args, "markdown_content")
        self.question(f"Creating new Google Doc named '{output_name}'")

        b4_folder_id = await self.drive(self.app.b4_folder_id)
        markdown_file = await self.drive(
            self.app.create_file,
            output_name,
            "Temporary markdown file for conversion",
            "text/markdown",
            b4_folder_id,
            markdown_content.encode("utf-8"),
        )
        try:
            doc = await self.drive(self.app.copy_file, markdown_file.id, output_name, GOOGLE_DOC_MIME_TYPE)
        except ToolError as e:
            await self._cleanup(markdown_file.id)
            raise ToolError(f"failed to convert markdown to Google Doc: {e}") from e

        await self._cleanup(markdown_file.id)
        output = (
            f"Successfully created new Google Doc '{doc.name}' (ID: {doc.id}) "
            f"in {self.app.b4_folder} folder."
        )
        self.response(output)
        return output

    async def _cleanup(self, file_id: str) -> None:
        try:
            await asyncio.to_thread(self.app.delete_file, file_id)
        except DriveError as e:
            logger.warning(f"CreateDoc: temporary file {file_id} left behind: {e}")
            self.response(f"Warning: could not delete temporary file {file_id}: {e}")


class DownloadToB4Tool(DriveTool):
    def declare(self) -> FunctionDeclaration:
        return FunctionDeclaration(
            name="DownloadToB4",
            description=(
                f"Downloads a file (typically a PDF) from a public URI and saves it into the "
                f"{self.app.b4_folder} folder. Use this to fetch official forms needed for an "
                "administrative procedure."
            ),
            parameters={
                "type": "object",
                "properties": {
                    "uri": {"type": "string", "description": "The public URI of the file to download."},
                    "name": {"type": "string", "description": "The file name of the new document."},
                    "description": {
                        "type": "string",
                        "description": "A detailed description of the new file, explaining its purpose.",
                    },
                },
                "required": ["uri", "name", "description"],
            },
        )

    async def run(self, context: CallContext, args: dict[str, Any]) -> Any:
        uri = require_str(args, "uri")
        name = require_str(args, "name")
        description = require_str(args, "description")
        if not uri.startswith(("http://", "https://")):
            raise ToolError(f"unsupported URI scheme: {uri}")
        self.question(f"Download from {uri} to create file '{name}'.")

        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(
                    uri,
                    timeout=DOWNLOAD_TIMEOUT_SECONDS,
                    follow_redirects=True,
                    headers={"User-Agent": "B3-Agent/1.0"},
                )
        except httpx.TimeoutException as e:
            raise ToolError(f"timed out downloading file from {uri}") from e
        except httpx.RequestError as e:
            raise ToolError(f"failed to download file from {uri}: {e}") from e

        if response.status_code != 200:
            raise ToolError(f"failed to download file: received status code {response.status_code}")

        # The extension of the URI is not trusted, the server's header is.
        mime_type = response.headers.get("content-type", "").split(";")[0].strip()
        mime_type = mime_type or "application/octet-stream"

        b4_folder_id = await self.drive(self.app.b4_folder_id)
        new_file = await self.drive(
            self.app.create_file, name, description, mime_type, b4_folder_id, response.content
        )
        output = (
            f"Successfully downloaded and saved file '{new_file.name}' (ID: {new_file.id}) "
            f"to {self.app.b4_folder} folder."
        )
        self.response(output)
        return output
