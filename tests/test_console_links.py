"""
Tests for AWS console deep links.
"""

import pytest

from ghostviewer.console_links import SERVICE_LINKS, aws_console_link
from ghostviewer.models import Resource


def link_for(arn=None, type="aws:unknown:Thing", id=None, region="us-east-1", **outputs):
    if arn is not None:
        outputs["arn"] = arn
    if region is not None:
        outputs["region"] = region
    return aws_console_link(Resource(type=type, urn="urn:test", id=id, outputs=outputs))


class TestServiceLinks:
    """Test per-service link construction."""

    def test_lambda(self):
        url = link_for("arn:aws:lambda:us-east-1:123456789012:function:my-fn")
        assert url == "https://us-east-1.console.aws.amazon.com/lambda/home?region=us-east-1#/functions/my-fn?tab=code"

    def test_s3(self):
        url = link_for("arn:aws:s3:::my-bucket")
        assert url == "https://s3.console.aws.amazon.com/s3/buckets/my-bucket?region=us-east-1"

    def test_dynamodb(self):
        url = link_for("arn:aws:dynamodb:us-east-1:123456789012:table/Orders")
        assert url.endswith("dynamodbv2/home?region=us-east-1#table?name=Orders")

    def test_sqs_prefers_queue_url(self):
        url = link_for("arn:aws:sqs:us-east-1:123456789012:jobs", url="https://sqs.us-east-1.amazonaws.com/123456789012/jobs")
        assert url == "https://sqs.us-east-1.amazonaws.com/123456789012/jobs"

    def test_sqs_without_url(self):
        url = link_for("arn:aws:sqs:us-east-1:123456789012:jobs")
        assert url.endswith("sqs/v2/home?region=us-east-1#/queues")

    def test_logs_group_is_encoded(self):
        url = link_for("arn:aws:logs:us-east-1:123456789012:log-group:/aws/lambda/my-fn")
        assert url.endswith("#logsV2:log-groups/log-group/%2Faws%2Flambda%2Fmy-fn")

    def test_secretsmanager(self):
        url = link_for("arn:aws:secretsmanager:us-east-1:123456789012:secret:db/password-AbCdEf")
        assert url.endswith("#!/secret?name=db%2Fpassword-AbCdEf")

    def test_iam_role_path(self):
        url = link_for("arn:aws:iam::123456789012:role/service-role/my-role")
        assert url == "https://console.aws.amazon.com/iam/home?#/roles/details/service-role/my-role"

    def test_cloudfront(self):
        url = link_for("arn:aws:cloudfront::123456789012:distribution/E2ABC")
        assert url == "https://console.aws.amazon.com/cloudfront/v3/home?#/distributions/E2ABC"

    @pytest.mark.parametrize("arn,fragment", [
        ("arn:aws:apigateway:us-east-1::/apis/a1b2c3", "#/apis/a1b2c3/dashboard"),
        ("arn:aws:apigateway:us-east-1::/restapis/r1/stages/prod", "#/apis/r1/resources"),
        ("arn:aws:apigateway:us-east-1::/domainnames/api.example.com", "#/domain-names/api.example.com"),
        ("arn:aws:apigateway:us-east-1::/usageplans/u1", "#/usage-plans/u1"),
    ])
    def test_apigateway_subresources(self, arn, fragment):
        assert link_for(arn).endswith(fragment)

    def test_apigateway_unknown_subresource(self):
        assert link_for("arn:aws:apigateway:us-east-1::/tags/x") is None

    @pytest.mark.parametrize("arn,fragment", [
        ("arn:aws:ec2:us-east-1:123456789012:vpc/vpc-0abc", "vpc/home?region=us-east-1#VpcDetails:VpcId=vpc-0abc"),
        ("arn:aws:ec2:us-east-1:123456789012:subnet/subnet-1", "vpc/home?region=us-east-1#SubnetDetails:SubnetId=subnet-1"),
        ("arn:aws:ec2:us-east-1:123456789012:security-group/sg-9", "ec2/v2/home?region=us-east-1#SecurityGroup:groupId=sg-9"),
        ("arn:aws:ec2:us-east-1:123456789012:natgateway/nat-7", "vpc/home?region=us-east-1#NatGatewayDetails:NatGatewayId=nat-7"),
    ])
    def test_ec2_subtypes(self, arn, fragment):
        assert link_for(arn).endswith(fragment)

    def test_ec2_other(self):
        url = link_for("arn:aws:ec2:us-east-1:123456789012:instance/i-123")
        assert url == "https://us-east-1.console.aws.amazon.com/ec2/v2/home?region=us-east-1"

    def test_table_covers_documented_services(self):
        for service in ("lambda", "s3", "dynamodb", "sqs", "sns", "rds", "states", "logs",
                        "apigateway", "iam", "events", "cognito-idp", "secretsmanager",
                        "acm", "cloudfront", "appsync", "kinesis", "ec2"):
            assert service in SERVICE_LINKS


class TestFallbacks:
    """Test generic and missing-data behaviour."""

    def test_unknown_service_goes_to_console_home(self):
        url = link_for("arn:aws:glue:us-east-1:123456789012:job/etl")
        assert url == "https://us-east-1.console.aws.amazon.com/console/home?region=us-east-1"

    def test_default_region(self):
        url = link_for("arn:aws:s3:::my-bucket", region=None)
        assert url.endswith("?region=us-west-2")

    def test_bare_bucket_id(self):
        url = link_for(type="aws:s3/bucket:Bucket", id="my-bucket")
        assert url == "https://s3.console.aws.amazon.com/s3/buckets/my-bucket?region=us-east-1"

    def test_bare_function_id(self):
        url = link_for(type="aws:lambda/function:Function", id="my-fn")
        assert url.endswith("lambda/home?region=us-east-1#/functions/my-fn")

    def test_bare_id_of_unlinkable_type(self):
        assert link_for(type="aws:iam/role:Role", id="my-role") is None

    def test_missing_identity(self):
        assert link_for() is None

    def test_encrypted_arn_output(self):
        assert link_for({"ciphertext": "abc"}) is None

    def test_malformed_arn(self):
        assert link_for("arn:aws:lambda") is None

    def test_lambda_arn_without_name(self):
        assert link_for("arn:aws:lambda:us-east-1:123456789012:function") is None
