"""Google Drive access for the B3 and B4 folders."""

import io
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseDownload, MediaIoBaseUpload

logger = logging.getLogger(__name__)

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
GOOGLE_DOC_MIME_TYPE = "application/vnd.google-apps.document"

# Google Workspace files cannot be downloaded as-is, they are exported.
EXPORT_MIME_TYPES = {
    GOOGLE_DOC_MIME_TYPE: "application/pdf",
    "application/vnd.google-apps.spreadsheet": "application/pdf",
    "application/vnd.google-apps.presentation": "application/pdf",
    "application/vnd.google-apps.drawing": "image/png",
}

LIST_FIELDS = "nextPageToken, files(id, name, mimeType, modifiedTime, description)"


class DriveError(Exception):
    """A Drive operation failed."""


class FolderNotFoundError(DriveError):
    """A root folder (B3 or B4) does not exist."""


class DeleteRefusedError(DriveError):
    """A file outside the B4 folder was about to be deleted."""


@dataclass
class DriveFile:
    """A file in the B3 or B4 folder."""

    id: str
    name: str
    modified: Optional[datetime] = None
    description: str = ""

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "DriveFile":
        modified = None
        if data.get("modifiedTime"):
            modified = datetime.fromisoformat(data["modifiedTime"].replace("Z", "+00:00"))
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            modified=modified,
            description=data.get("description", "") or "",
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly form, as shown to the model."""
        data: dict[str, Any] = {"id": self.id, "name": self.name}
        if self.modified is not None:
            data["modified"] = self.modified.isoformat()
        if self.description:
            data["description"] = self.description
        return data


class DriveApp:
    """Thin wrapper around the Drive v3 service.

    All methods are blocking; tools run them in worker threads.
    """

    def __init__(self, service: Any, b3_folder: str = "B3", b4_folder: str = "B4"):
        self.service = service
        self.b3_folder = b3_folder
        self.b4_folder = b4_folder
        self._folder_ids: dict[str, str] = {}

    @classmethod
    def from_credentials(cls, credentials: Any, **kwargs: Any) -> "DriveApp":
        service = build("drive", "v3", credentials=credentials, cache_discovery=False)
        return cls(service, **kwargs)

    # Folders

    def find_folder_id(self, name: str) -> str:
        """Find a folder by name in the root of the user's Drive.

        Raises:
            FolderNotFoundError: If there is no such folder.
        """
        if name in self._folder_ids:
            return self._folder_ids[name]

        query = (
            f"name = '{name}' and mimeType = '{FOLDER_MIME_TYPE}' "
            "and 'root' in parents and trashed = false"
        )
        result = self._execute(
            self.service.files().list(q=query, pageSize=1, fields="files(id)"),
            f"failed to search for '{name}' folder",
        )
        files = result.get("files", [])
        if not files:
            raise FolderNotFoundError(
                f"'{name}' folder not found in the root of your Google Drive. "
                "Please create it and try again"
            )
        self._folder_ids[name] = files[0]["id"]
        return files[0]["id"]

    def b3_folder_id(self) -> str:
        return self.find_folder_id(self.b3_folder)

    def b4_folder_id(self) -> str:
        return self.find_folder_id(self.b4_folder)

    # Listing

    def b3_files(self) -> list[DriveFile]:
        return self.list_files(self.b3_folder_id())

    def b4_files(self) -> list[DriveFile]:
        return self.list_files(self.b4_folder_id())

    def list_files(self, folder_id: str) -> list[DriveFile]:
        """List every file below a folder, subfolders included (breadth first)."""
        files: list[DriveFile] = []
        folders_to_scan = [folder_id]

        while folders_to_scan:
            current = folders_to_scan.pop(0)
            page_token = None
            while True:
                page = self._execute(
                    self.service.files().list(
                        q=f"'{current}' in parents and trashed = false",
                        fields=LIST_FIELDS,
                        pageToken=page_token,
                    ),
                    f"failed to list files in folder {current}",
                )
                for item in page.get("files", []):
                    if item.get("mimeType") == FOLDER_MIME_TYPE:
                        folders_to_scan.append(item["id"])
                        continue
                    files.append(DriveFile.from_api(item))
                page_token = page.get("nextPageToken")
                if not page_token:
                    break

        return files

    # Content

    def get_file_content(self, file_id: str) -> tuple[bytes, str]:
        """Download a file.

        Google Workspace documents are exported (to PDF for most of them).

        Returns:
            The content and its MIME type.
        """
        metadata = self._execute(
            self.service.files().get(fileId=file_id, fields="mimeType"),
            f"unable to get file metadata for {file_id}",
        )
        mime_type = metadata.get("mimeType", "application/octet-stream")

        export_type = EXPORT_MIME_TYPES.get(mime_type)
        if export_type:
            return self.export_file(file_id, export_type), export_type

        content = self._download(
            self.service.files().get_media(fileId=file_id),
            f"unable to download file {file_id}",
        )
        return content, mime_type

    def export_file(self, file_id: str, mime_type: str) -> bytes:
        return self._download(
            self.service.files().export_media(fileId=file_id, mimeType=mime_type),
            f"unable to export file {file_id} to {mime_type}",
        )

    # Writes

    def update_file(self, file_id: str, name: str = "", description: str = "") -> None:
        """Update the name and/or description; empty values are left untouched."""
        body: dict[str, str] = {}
        if name:
            body["name"] = name
        if description:
            body["description"] = description
        if not body:
            return

        self._execute(
            self.service.files().update(fileId=file_id, body=body, fields=",".join(body)),
            f"could not update file {file_id}",
        )

    def create_file(
        self,
        name: str,
        description: str,
        mime_type: str,
        parent_id: str,
        content: bytes,
    ) -> DriveFile:
        body = {
            "name": name,
            "description": description,
            "mimeType": mime_type,
            "parents": [parent_id],
        }
        media = MediaIoBaseUpload(io.BytesIO(content), mimetype=mime_type, resumable=False)
        created = self._execute(
            self.service.files().create(body=body, media_body=media, fields="id, name"),
            f"could not create file '{name}'",
        )
        return DriveFile(id=created["id"], name=created.get("name", name))

    def copy_file(self, file_id: str, name: str, mime_type: str) -> DriveFile:
        """Copy a file, converting it when ``mime_type`` is a Google Workspace type."""
        copied = self._execute(
            self.service.files().copy(
                fileId=file_id, body={"name": name, "mimeType": mime_type}, fields="id, name"
            ),
            f"could not copy file {file_id}",
        )
        return DriveFile(id=copied["id"], name=copied.get("name", name))

    def update_file_content(self, file_id: str, mime_type: str, content: bytes) -> DriveFile:
        media = MediaIoBaseUpload(io.BytesIO(content), mimetype=mime_type, resumable=False)
        updated = self._execute(
            self.service.files().update(fileId=file_id, media_body=media, fields="id, name"),
            f"could not update file '{file_id}'",
        )
        return DriveFile(id=updated["id"], name=updated.get("name", ""))

    def is_file_in_folder(self, file_id: str, folder_id: str) -> bool:
        """Check whether a file is a descendant of a folder."""
        metadata = self._execute(
            self.service.files().get(fileId=file_id, fields="parents"),
            f"unable to get file metadata for {file_id}",
        )
        for parent_id in metadata.get("parents", []):
            if parent_id == folder_id:
                return True
            try:
                if self.is_file_in_folder(parent_id, folder_id):
                    return True
            except DriveError:
                # Parents outside the user's visible tree (e.g. root) cannot be read.
                continue
        return False

    def delete_file(self, file_id: str) -> None:
        """Permanently delete a file, only if it lives in the B4 folder.

        Raises:
            DeleteRefusedError: If the file is not inside B4.
        """
        b4_folder_id = self.b4_folder_id()
        if not self.is_file_in_folder(file_id, b4_folder_id):
            raise DeleteRefusedError(
                f"safety check failed: file {file_id} is not in the {self.b4_folder} "
                "folder and will not be deleted"
            )
        self._execute(
            self.service.files().delete(fileId=file_id),
            f"failed to delete file with ID {file_id}",
        )

    # Helpers

    @staticmethod
    def _execute(request: Any, message: str) -> dict[str, Any]:
        try:
            return request.execute() or {}
        except HttpError as e:
            raise DriveError(f"{message}: {e}") from e

    @staticmethod
    def _download(request: Any, message: str) -> bytes:
        buffer = io.BytesIO()
        try:
            downloader = MediaIoBaseDownload(buffer, request)
            done = False
            while not done:
                _, done = downloader.next_chunk()
        except HttpError as e:
            raise DriveError(f"{message}: {e}") from e
        return buffer.getvalue()
