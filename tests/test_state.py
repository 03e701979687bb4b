"""
Tests for declared state loading.
"""

import io
import json
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError

from ghostviewer.errors import StateUnavailable
from ghostviewer.state import (
    extract_resources,
    parse_s3_location,
    parse_state,
    read_declared_state,
    state_exists,
)


class TestParseState:
    """Test resource list extraction across state layouts."""

    def test_latest_layout(self, state_document):
        state = parse_state(state_document)
        assert len(state.resources) == 6
        assert state.stack == "organization/shop/dev"

    def test_checkpoint_layout(self):
        data = {"checkpoint": {"stack": "org/app/prod", "latest": {"resources": [{"urn": "u", "type": "t"}]}}}
        state = parse_state(data)
        assert [r.urn for r in state.resources] == ["u"]
        assert state.stack == "org/app/prod"

    def test_deployment_layout(self):
        data = {"deployment": {"stack": "org/app/dev", "resources": [{"urn": "u", "type": "t", "id": "x"}]}}
        state = parse_state(data)
        assert state.resources[0].id == "x"
        assert state.stack == "org/app/dev"

    def test_empty_document(self):
        state = parse_state({})
        assert state.resources == []
        assert state.stack is None

    def test_empty_latest_list_wins(self):
        data = {
            "latest": {"resources": []},
            "deployment": {"resources": [{"urn": "x", "type": "t"}]},
        }
        assert extract_resources(data) == []

    def test_null_latest_falls_through(self):
        data = {
            "latest": {"resources": None},
            "deployment": {"resources": [{"urn": "x", "type": "t"}]},
        }
        assert [r.urn for r in extract_resources(data)] == ["x"]

    def test_malformed_records_are_skipped(self):
        resources = extract_resources({"latest": {"resources": [
            {"urn": "good", "type": "t", "outputs": "not-a-dict", "parent": 7},
            {"type": "t"},
            "garbage",
        ]}})
        assert len(resources) == 1
        assert resources[0].outputs == {}
        assert resources[0].parent is None

    def test_non_object_document(self):
        with pytest.raises(StateUnavailable):
            parse_state(["not", "a", "state"])


class TestReadLocalState:
    """Test reading state from disk."""

    def test_reads_file(self, state_file):
        state = read_declared_state(str(state_file))
        assert state.source == str(state_file)
        assert len(state.resources) == 6

    def test_missing_path(self):
        with pytest.raises(StateUnavailable, match="Settings"):
            read_declared_state("")

    def test_missing_file(self, tmp_path):
        with pytest.raises(StateUnavailable, match="not found"):
            read_declared_state(str(tmp_path / "nope.json"))

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{not json")
        with pytest.raises(StateUnavailable, match="not valid JSON"):
            read_declared_state(str(path))

    def test_state_exists(self, state_file, tmp_path):
        assert state_exists(str(state_file))
        assert not state_exists(str(tmp_path / "nope.json"))
        assert not state_exists("")
        assert state_exists("s3://bucket/app/shop/dev.json")


class TestReadS3State:
    """Test reading state from S3."""

    def test_parse_location_with_region(self):
        assert parse_s3_location("s3://sst-state/app/shop/dev.json:eu-west-1") == (
            "sst-state", "app/shop/dev.json", "eu-west-1"
        )

    def test_parse_location_without_region(self):
        assert parse_s3_location("s3://sst-state/app/shop/dev.json") == ("sst-state", "app/shop/dev.json", None)

    def test_parse_location_requires_key(self):
        with pytest.raises(ValueError):
            parse_s3_location("s3://bucket-only")

    def test_reads_object(self, state_document):
        client = MagicMock()
        client.get_object.return_value = {"Body": io.BytesIO(json.dumps(state_document).encode())}

        state = read_declared_state("s3://sst-state/app/shop/dev.json", s3_client=client)

        client.get_object.assert_called_once_with(Bucket="sst-state", Key="app/shop/dev.json")
        assert len(state.resources) == 6

    @patch("ghostviewer.state.boto3.client")
    def test_uses_region_from_location(self, mock_client):
        mock_client.return_value.get_object.return_value = {"Body": io.BytesIO(b"{}")}

        read_declared_state("s3://sst-state/app/shop/dev.json:ap-southeast-2")

        mock_client.assert_called_once_with("s3", region_name="ap-southeast-2")

    def test_missing_object(self):
        client = MagicMock()
        client.get_object.side_effect = ClientError(
            {"Error": {"Code": "NoSuchKey", "Message": "The specified key does not exist."}},
            "GetObject",
        )
        with pytest.raises(StateUnavailable, match="Could not read"):
            read_declared_state("s3://sst-state/app/shop/dev.json", s3_client=client)
