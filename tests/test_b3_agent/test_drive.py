"""Tests for the Google Drive wrapper."""

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from googleapiclient.errors import HttpError

from b3_agents.b3_agent.drive import (
    FOLDER_MIME_TYPE,
    GOOGLE_DOC_MIME_TYPE,
    DeleteRefusedError,
    DriveApp,
    DriveError,
    DriveFile,
    FolderNotFoundError,
)


def http_error(status: int = 404, reason: str = "Not Found") -> HttpError:
    return HttpError(SimpleNamespace(status=status, reason=reason), b"error")


def make_service() -> MagicMock:
    return MagicMock()


def files_api(service: MagicMock) -> MagicMock:
    return service.files.return_value


class TestDriveFile:
    """Test suite for DriveFile."""

    def test_from_api(self):
        item = {
            "id": "1",
            "name": "passport.pdf",
            "modifiedTime": "2024-05-01T10:00:00.000Z",
            "description": "Passport",
        }
        drive_file = DriveFile.from_api(item)

        assert drive_file.id == "1"
        assert drive_file.modified == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)
        assert drive_file.description == "Passport"

    def test_to_dict_omits_empty_fields(self):
        assert DriveFile(id="1", name="scan.jpg").to_dict() == {"id": "1", "name": "scan.jpg"}


class TestFolders:
    """Test suite for root folder lookup."""

    def test_find_folder_is_cached(self):
        service = make_service()
        files_api(service).list.return_value.execute.return_value = {"files": [{"id": "b3-id"}]}
        app = DriveApp(service)

        assert app.b3_folder_id() == "b3-id"
        assert app.b3_folder_id() == "b3-id"
        assert files_api(service).list.return_value.execute.call_count == 1
        query = files_api(service).list.call_args.kwargs["q"]
        assert "name = 'B3'" in query
        assert "'root' in parents" in query

    def test_missing_folder(self):
        service = make_service()
        files_api(service).list.return_value.execute.return_value = {"files": []}
        app = DriveApp(service, b4_folder="Procedures")

        with pytest.raises(FolderNotFoundError, match="'Procedures' folder not found"):
            app.b4_folder_id()

    def test_http_error_becomes_drive_error(self):
        service = make_service()
        files_api(service).list.return_value.execute.side_effect = http_error(500, "Backend Error")

        with pytest.raises(DriveError, match="failed to search for 'B3' folder"):
            DriveApp(service).b3_folder_id()


class TestListFiles:
    """Test suite for recursive listing."""

    def test_breadth_first_with_pagination(self):
        """Test that subfolders are walked and pages are followed."""
        service = make_service()
        files_api(service).list.return_value.execute.side_effect = [
            {
                "files": [
                    {"id": "sub", "name": "Taxes", "mimeType": FOLDER_MIME_TYPE},
                    {"id": "a", "name": "a.pdf", "mimeType": "application/pdf"},
                ],
                "nextPageToken": "page-2",
            },
            {"files": [{"id": "b", "name": "b.jpg", "mimeType": "image/jpeg"}]},
            {"files": [{"id": "c", "name": "c.pdf", "mimeType": "application/pdf"}]},
        ]

        files = DriveApp(service).list_files("root-folder")

        assert [f.id for f in files] == ["a", "b", "c"]
        queries = [c.kwargs["q"] for c in files_api(service).list.call_args_list]
        assert queries == [
            "'root-folder' in parents and trashed = false",
            "'root-folder' in parents and trashed = false",
            "'sub' in parents and trashed = false",
        ]
        assert files_api(service).list.call_args_list[1].kwargs["pageToken"] == "page-2"


class TestContent:
    """Test suite for downloads and writes."""

    def test_download_regular_file(self):
        service = make_service()
        files_api(service).get.return_value.execute.return_value = {"mimeType": "application/pdf"}
        app = DriveApp(service)

        with patch.object(DriveApp, "_download", return_value=b"%PDF") as mock_download:
            content, mime_type = app.get_file_content("f1")

        assert (content, mime_type) == (b"%PDF", "application/pdf")
        files_api(service).get_media.assert_called_once_with(fileId="f1")
        mock_download.assert_called_once()

    def test_google_doc_is_exported(self):
        service = make_service()
        files_api(service).get.return_value.execute.return_value = {"mimeType": GOOGLE_DOC_MIME_TYPE}
        app = DriveApp(service)

        with patch.object(DriveApp, "_download", return_value=b"%PDF"):
            content, mime_type = app.get_file_content("doc")

        assert mime_type == "application/pdf"
        files_api(service).export_media.assert_called_once_with(fileId="doc", mimeType="application/pdf")
        files_api(service).get_media.assert_not_called()

    def test_update_file_only_sends_given_fields(self):
        service = make_service()
        DriveApp(service).update_file("f1", description="New description")

        kwargs = files_api(service).update.call_args.kwargs
        assert kwargs["fileId"] == "f1"
        assert kwargs["body"] == {"description": "New description"}

    def test_update_file_without_changes(self):
        service = make_service()
        DriveApp(service).update_file("f1")

        files_api(service).update.assert_not_called()

    def test_create_file(self):
        service = make_service()
        files_api(service).create.return_value.execute.return_value = {"id": "new", "name": "x.pdf"}

        created = DriveApp(service).create_file("x.pdf", "desc", "application/pdf", "b4-id", b"%PDF")

        assert created == DriveFile(id="new", name="x.pdf")
        body = files_api(service).create.call_args.kwargs["body"]
        assert body == {
            "name": "x.pdf",
            "description": "desc",
            "mimeType": "application/pdf",
            "parents": ["b4-id"],
        }


class TestDelete:
    """Test suite for the B4-only delete guard."""

    @staticmethod
    def app_with_parents(parents: dict) -> tuple[DriveApp, MagicMock]:
        service = make_service()
        app = DriveApp(service)
        app._folder_ids["B4"] = "b4-id"

        def get(fileId, fields):
            request = MagicMock()
            request.execute.return_value = {"parents": parents.get(fileId, [])}
            return request

        files_api(service).get.side_effect = get
        return app, service

    def test_deletes_file_in_b4_subfolder(self):
        app, service = self.app_with_parents({"f1": ["sub"], "sub": ["b4-id"]})

        app.delete_file("f1")

        files_api(service).delete.assert_called_once_with(fileId="f1")

    def test_refuses_file_outside_b4(self):
        app, service = self.app_with_parents({"f1": ["b3-id"], "b3-id": ["root"]})

        with pytest.raises(DeleteRefusedError):
            app.delete_file("f1")

        files_api(service).delete.assert_not_called()
