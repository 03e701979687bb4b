"""
AWS console deep-link builders.

Links are dispatched on the ARN's service field through SERVICE_LINKS.
Each entry takes the console region, the parsed ARN and the resource and
returns a URL, or None when the ARN lacks the fields it needs.
"""

import urllib.parse
from typing import Callable, Dict, Optional

from .identity import Arn, parse_arn, resource_region
from .models import Resource


DEFAULT_REGION = "us-west-2"

LinkBuilder = Callable[[str, Arn, Resource], Optional[str]]


def _console(region: str, path: str) -> str:
    return f"https://{region}.console.aws.amazon.com/{path}"


def _encode(value: str) -> str:
    """Percent-encode a path component the way encodeURIComponent does."""
    return urllib.parse.quote(value, safe="-_.!~*'()")


def _field(arn: Arn, index: int) -> Optional[str]:
    if len(arn.parts) > index and arn.parts[index]:
        return arn.parts[index]
    return None


def _resource_id(arn: Arn) -> Optional[str]:
    """Id portion of "type/id" resource fields, or the whole field."""
    field = _field(arn, 5)
    if field is None:
        return None
    segments = field.split("/")
    if len(segments) > 1 and segments[1]:
        return segments[1]
    return field


def _after(arn: Arn, marker: str) -> Optional[str]:
    raw = ":".join(arn.parts)
    if marker not in raw:
        return None
    return raw.split(marker, 1)[1].split("/")[0] or None


def lambda_link(region: str, arn: Arn, resource: Resource) -> Optional[str]:
    name = _field(arn, 6)
    if name is None:
        return None
    return _console(region, f"lambda/home?region={region}#/functions/{name}?tab=code")


def s3_link(region: str, arn: Arn, resource: Resource) -> Optional[str]:
    raw = ":".join(arn.parts)
    if ":::" not in raw:
        return None
    bucket = raw.split(":::", 1)[1]
    if not bucket:
        return None
    return f"https://s3.console.aws.amazon.com/s3/buckets/{bucket}?region={region}"


def dynamodb_link(region: str, arn: Arn, resource: Resource) -> Optional[str]:
    table = _resource_id(arn)
    if table is None:
        return None
    return _console(region, f"dynamodbv2/home?region={region}#table?name={table}")


def sqs_link(region: str, arn: Arn, resource: Resource) -> Optional[str]:
    url = resource.output("url")
    if isinstance(url, str) and url:
        return url
    return _console(region, f"sqs/v2/home?region={region}#/queues")


def sns_link(region: str, arn: Arn, resource: Resource) -> Optional[str]:
    return _console(region, f"sns/v3/home?region={region}#/topics/{':'.join(arn.parts)}")


def rds_link(region: str, arn: Arn, resource: Resource) -> Optional[str]:
    return _console(region, f"rds/home?region={region}#database:id={arn.tail};is-cluster=true")


def states_link(region: str, arn: Arn, resource: Resource) -> Optional[str]:
    return _console(region, f"states/home?region={region}#/statemachines/view/{':'.join(arn.parts)}")


def logs_link(region: str, arn: Arn, resource: Resource) -> Optional[str]:
    group = _field(arn, 6)
    if group is None:
        return None
    return _console(region, f"cloudwatch/home?region={region}#logsV2:log-groups/log-group/{_encode(group)}")


# apigateway ARNs carry the sub-resource in their path
APIGATEWAY_PATHS = (
    ("/apis/", "apis/{}/dashboard"),
    ("/restapis/", "apis/{}/resources"),
    ("/domainnames/", "domain-names/{}"),
    ("/vpclinks/", "vpc-links/{}"),
    ("/usageplans/", "usage-plans/{}"),
    ("/apikeys/", "api-keys/{}"),
)


def apigateway_link(region: str, arn: Arn, resource: Resource) -> Optional[str]:
    for marker, fragment in APIGATEWAY_PATHS:
        value = _after(arn, marker)
        if value:
            return _console(region, f"apigateway/home?region={region}#/{fragment.format(value)}")
    return None


def iam_link(region: str, arn: Arn, resource: Resource) -> Optional[str]:
    field = _field(arn, 5)
    if field is None:
        return None
    role = "/".join(field.split("/")[1:]) or field
    return f"https://console.aws.amazon.com/iam/home?#/roles/details/{role}"


def events_link(region: str, arn: Arn, resource: Resource) -> Optional[str]:
    rule = _resource_id(arn)
    if rule is None:
        return None
    return _console(region, f"events/home?region={region}#/rules/{rule}")


def cognito_link(region: str, arn: Arn, resource: Resource) -> Optional[str]:
    pool = _resource_id(arn)
    if pool is None:
        return None
    return _console(region, f"cognito/v2/idp/user-pools/{pool}/info?region={region}")


def secretsmanager_link(region: str, arn: Arn, resource: Resource) -> Optional[str]:
    secret = _field(arn, 6)
    if secret is None:
        return None
    return _console(region, f"secretsmanager/home?region={region}#!/secret?name={_encode(secret)}")


def acm_link(region: str, arn: Arn, resource: Resource) -> Optional[str]:
    certificate = _resource_id(arn)
    if certificate is None:
        return None
    return _console(region, f"acm/home?region={region}#/?uuid={certificate}")


def cloudfront_link(region: str, arn: Arn, resource: Resource) -> Optional[str]:
    distribution = _resource_id(arn)
    if distribution is None:
        return None
    return f"https://console.aws.amazon.com/cloudfront/v3/home?#/distributions/{distribution}"


def appsync_link(region: str, arn: Arn, resource: Resource) -> Optional[str]:
    api = _field(arn, 5)
    if api is None:
        return None
    return _console(region, f"appsync/home?region={region}#/apis/{api}/schema")


def kinesis_link(region: str, arn: Arn, resource: Resource) -> Optional[str]:
    stream = _resource_id(arn)
    if stream is None:
        return None
    return _console(region, f"kinesis/home?region={region}#/streams/details/{stream}/monitoring")


# ec2 ARN resource prefix -> (console, fragment template)
EC2_PATHS = (
    ("/vpc-", "vpc", "VpcDetails:VpcId={}"),
    ("/subnet-", "vpc", "SubnetDetails:SubnetId={}"),
    ("/igw-", "vpc", "InternetGateway:internetGatewayId={}"),
    ("/sg-", "ec2/v2", "SecurityGroup:groupId={}"),
    ("/rtb-", "vpc", "RouteTableDetails:RouteTableId={}"),
    ("/nat-", "vpc", "NatGatewayDetails:NatGatewayId={}"),
    ("/eni-", "ec2/v2", "Nic:networkInterfaceId={}"),
)


def ec2_link(region: str, arn: Arn, resource: Resource) -> Optional[str]:
    raw = ":".join(arn.parts)
    for marker, console, fragment in EC2_PATHS:
        if marker in raw:
            resource_id = raw.split("/")[1]
            return _console(region, f"{console}/home?region={region}#{fragment.format(resource_id)}")
    return _console(region, f"ec2/v2/home?region={region}")


SERVICE_LINKS: Dict[str, LinkBuilder] = {
    "lambda": lambda_link,
    "s3": s3_link,
    "dynamodb": dynamodb_link,
    "sqs": sqs_link,
    "sns": sns_link,
    "rds": rds_link,
    "states": states_link,
    "logs": logs_link,
    "apigateway": apigateway_link,
    "iam": iam_link,
    "events": events_link,
    "cognito-idp": cognito_link,
    "secretsmanager": secretsmanager_link,
    "acm": acm_link,
    "cloudfront": cloudfront_link,
    "appsync": appsync_link,
    "kinesis": kinesis_link,
    "ec2": ec2_link,
}

# Declared type fragment -> builder for resources that only carry a bare physical id
BARE_ID_LINKS = (
    ("s3/bucket", lambda region, value: f"https://s3.console.aws.amazon.com/s3/buckets/{value}?region={region}"),
    ("lambda/function", lambda region, value: _console(region, f"lambda/home?region={region}#/functions/{value}")),
    ("dynamodb/table", lambda region, value: _console(region, f"dynamodbv2/home?region={region}#table?name={value}")),
)


def console_home(region: str) -> str:
    return _console(region, f"console/home?region={region}")


def aws_console_link(resource: Resource, default_region: str = DEFAULT_REGION) -> Optional[str]:
    """
    Build a console deep link for a resource.

    Args:
        resource: Resource carrying an ARN output or a physical id
        default_region: Region used when the resource does not record one

    Returns:
        Console URL, or None when the resource has nothing to link to
    """
    candidate = resource.output("arn") or resource.id or ""
    if not isinstance(candidate, str) or not candidate:
        return None

    region = resource_region(resource, default_region)

    arn = parse_arn(candidate)
    if arn is not None:
        builder = SERVICE_LINKS.get(arn.service)
        if builder is None:
            return console_home(region)
        return builder(region, arn, resource)

    if candidate.startswith("arn:"):
        return None

    type_name = resource.type.lower()
    for fragment, build in BARE_ID_LINKS:
        if fragment in type_name:
            return build(region, candidate)
    return None
