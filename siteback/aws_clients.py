import os
from typing import Optional

import boto3

REGION = os.getenv("AWS_REGION", os.getenv("AWS_DEFAULT_REGION", "us-east-1"))


def _kw(region: Optional[str] = None, endpoint_url: Optional[str] = None):
    k = {"region_name": region or REGION}
    if endpoint_url:
        k["endpoint_url"] = endpoint_url
    return k


def dynamodb_resource(region: Optional[str] = None, endpoint_url: Optional[str] = None):
    return boto3.resource("dynamodb", **_kw(region, endpoint_url))


def secretsmanager_client(region: Optional[str] = None):
    return boto3.client("secretsmanager", **_kw(region))
