"""
Shared fixtures for Ghost Viewer tests.
"""

import json

import pytest


STACK_URN = "urn:pulumi:dev::shop::pulumi:pulumi:Stack::shop-dev"


@pytest.fixture
def state_document():
    """An SST v3 style state document."""
    return {
        "stack": "organization/shop/dev",
        "latest": {
            "resources": [
                {
                    "urn": STACK_URN,
                    "type": "pulumi:pulumi:Stack",
                },
                {
                    "urn": "urn:pulumi:dev::shop::pulumi:providers:aws::default",
                    "type": "pulumi:providers:aws",
                    "inputs": {"region": "eu-west-1"},
                },
                {
                    "urn": "urn:pulumi:dev::shop::sst:aws:Bucket::Uploads",
                    "type": "sst:aws:Bucket",
                    "parent": STACK_URN,
                },
                {
                    "urn": "urn:pulumi:dev::shop::sst:aws:Bucket$aws:s3/bucketV2:BucketV2::UploadsBucket",
                    "type": "aws:s3/bucketV2:BucketV2",
                    "id": "shop-dev-uploads-abc123",
                    "parent": "urn:pulumi:dev::shop::sst:aws:Bucket::Uploads",
                    "outputs": {"arn": "arn:aws:s3:::shop-dev-uploads-abc123"},
                },
                {
                    "urn": "urn:pulumi:dev::shop::sst:aws:Function::Api",
                    "type": "sst:aws:Function",
                    "parent": STACK_URN,
                },
                {
                    "urn": "urn:pulumi:dev::shop::sst:aws:Function$aws:lambda/function:Function::ApiFunction",
                    "type": "aws:lambda/function:Function",
                    "id": "shop-dev-ApiFunction-xyz",
                    "parent": "urn:pulumi:dev::shop::sst:aws:Function::Api",
                    "outputs": {
                        "arn": "arn:aws:lambda:eu-west-1:123456789012:function:shop-dev-ApiFunction-xyz",
                        "handler": "src/api.handler",
                    },
                },
            ]
        },
    }


@pytest.fixture
def state_file(tmp_path, state_document):
    path = tmp_path / "state.json"
    path.write_text(json.dumps(state_document))
    return path


DEEP_CHAIN_LENGTH = 5000


@pytest.fixture
def deep_chain_records():
    """A single parent chain far deeper than the interpreter's recursion limit."""
    records = [{"urn": "n0", "type": "sst:aws:Vpc"}]
    records += [
        {"urn": f"n{i}", "type": "aws:ec2/subnet:Subnet", "parent": f"n{i - 1}"}
        for i in range(1, DEEP_CHAIN_LENGTH)
    ]
    return records


@pytest.fixture
def deep_chain_file(tmp_path, deep_chain_records):
    path = tmp_path / "deep.json"
    path.write_text(json.dumps({"latest": {"resources": deep_chain_records}}))
    return path
