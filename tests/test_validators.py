import uuid

import pytest
from pydantic import ValidationError

from vidtube import schemas
from vidtube.errors import BadRequestError
from vidtube.validators import (
    ensure_email, is_valid_id, parse_duration, parse_id, require_fields, same_id,
)


class TestIds:
    def test_parse_id_accepts_uuid_text(self):
        raw = uuid.uuid4()
        assert parse_id(str(raw), "Video") == raw

    @pytest.mark.parametrize("value", [None, "", "42", "not-a-uuid", "65f1c2d3e4b5a69788990011"])
    def test_malformed_ids_are_bad_requests(self, value):
        assert is_valid_id(value) is False
        with pytest.raises(BadRequestError) as excinfo:
            parse_id(value, "Video")
        assert excinfo.value.message == "Video id is missing or invalid"

    def test_same_id_ignores_representation(self):
        raw = uuid.uuid4()
        assert same_id(raw, str(raw)) is True
        assert same_id(raw, None) is False
        assert same_id(None, None) is False


class TestFields:
    def test_blank_values_are_rejected(self):
        with pytest.raises(BadRequestError, match="All fields are required"):
            require_fields("All fields are required", "alice", "   ")

    def test_present_values_pass(self):
        require_fields("All fields are required", "alice", "secret")

    def test_email_is_normalised(self):
        assert ensure_email(" alice@example.com ") == "alice@example.com"

    def test_bad_email(self):
        with pytest.raises(BadRequestError, match="Email is invalid"):
            ensure_email("alice-at-example")

    @pytest.mark.parametrize("value,expected", [("12.5", 12.5), ("0", 0.0), ("-3", 0.0), ("long", 0.0), (None, 0.0)])
    def test_duration(self, value, expected):
        assert parse_duration(value) == expected


class TestNonBlankFields:
    def test_values_are_stripped(self):
        change = schemas.PasswordChange(oldPassword="  old  ", newPassword="new")
        assert change.oldPassword == "old"

    def test_whitespace_only_is_rejected(self):
        with pytest.raises(ValidationError):
            schemas.PasswordChange(oldPassword="   ", newPassword="new")
