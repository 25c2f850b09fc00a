"""
Tests for configuration and identity record types
"""
import pytest
from pydantic import ValidationError

from filegate.models.configuration import FolderEntry, GateConfiguration
from filegate.models.write import Identity, RequestOrigin, WriteOutcome
from filegate.core.errors import ErrorKind, IOFailure, PayloadTooLarge


class TestGateConfiguration:

    def test_defaults(self):
        config = GateConfiguration()
        assert config.server_base_url is None
        assert config.api_key is None
        assert config.allow_non_admin is False
        assert config.max_payload_bytes == 2 * 1024 * 1024
        assert config.max_backups == 5
        assert config.exposed_folders == []

    @pytest.mark.parametrize("url", ["ftp://host", "not a url", "http://", "file:///etc"])
    def test_rejects_non_http_base_url(self, url):
        with pytest.raises(ValidationError):
            GateConfiguration(server_base_url=url)

    def test_normalizes_base_url_and_empty_strings(self):
        config = GateConfiguration(server_base_url=" https://media.example/jf/ ", api_key="  ")
        assert config.server_base_url == "https://media.example/jf"
        assert config.api_key is None

    def test_limits(self):
        with pytest.raises(ValidationError):
            GateConfiguration(max_payload_bytes=1023)
        with pytest.raises(ValidationError):
            GateConfiguration(max_backups=-1)
        assert GateConfiguration(max_payload_bytes=1024, max_backups=0).max_backups == 0

    def test_duplicate_names_case_insensitive(self):
        with pytest.raises(ValidationError, match="Duplicate folder name"):
            GateConfiguration(exposed_folders=[
                FolderEntry(name="Logs", relative_path="a"),
                FolderEntry(name="logs", relative_path="b"),
            ])

    def test_duplicate_paths_case_insensitive(self):
        with pytest.raises(ValidationError, match="Duplicate folder path"):
            GateConfiguration(exposed_folders=[
                FolderEntry(name="a", relative_path="Shared"),
                FolderEntry(name="b", relative_path="shared"),
            ])

    @pytest.mark.parametrize("bad", ["..", "a/b", "a\\b", "", "with space", "backups"])
    def test_folder_token_grammar(self, bad):
        with pytest.raises(ValidationError):
            FolderEntry(name="ok", relative_path=bad)

    def test_find_folder_by_name_or_path(self):
        config = GateConfiguration(exposed_folders=[
            FolderEntry(name="Reports", relative_path="report-files"),
        ])
        assert config.find_folder("reports").relative_path == "report-files"
        assert config.find_folder("REPORT-FILES").name == "Reports"
        assert config.find_folder("other") is None


class TestIdentity:

    def test_policy_administrator(self):
        identity = Identity.from_document({"Id": "1", "Policy": {"IsAdministrator": True}})
        assert identity.is_admin is True
        assert identity.user_id == "1"

    def test_has_administrative_role(self):
        assert Identity.from_document({"Id": "2", "HasAdministrativeRole": True}).is_admin

    def test_role_list_fallback(self):
        assert Identity.from_document({"Id": "3", "Roles": ["User", "ADMINISTRATOR"]}).is_admin

    def test_plain_user(self):
        identity = Identity.from_document({"Id": "4", "Policy": {"IsAdministrator": False}, "Roles": ["User"]})
        assert identity.is_admin is False


class TestRequestOrigin:

    def test_forwarded_proto_and_prefix(self):
        origin = RequestOrigin(scheme="http", host="media.example", forwarded_proto="https", path_prefix="/jf/")
        assert origin.base_url() == "https://media.example/jf"

    def test_no_host(self):
        assert RequestOrigin().base_url() is None


class TestWriteOutcome:

    def test_failure_hides_io_detail(self):
        outcome = WriteOutcome.failure(IOFailure("disk full at /srv/data/x.json"))
        assert outcome.status_code == 500
        assert outcome.error_kind == ErrorKind.IO
        assert "/srv" not in outcome.to_dict()["detail"]

    def test_payload_too_large_is_validation(self):
        outcome = WriteOutcome.failure(PayloadTooLarge("Payload too large"))
        assert outcome.status_code == 413
        assert outcome.error_kind == ErrorKind.VALIDATION
