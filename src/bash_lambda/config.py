"""
Static settings for bash-lambda.

Deployed functions get a fixed memory size and timeout, and always run on the
public bash custom runtime layer.
"""
import os
from typing import Mapping, Optional

from bash_lambda.exceptions import EnvironmentValidationError

TIMEOUT = 900  # 15 minutes
MEMORY_SIZE = 1024  # 1GB
RUNTIME = "provided"

# Public layer providing a bash runtime (github.com/gkrizek/bash-lambda-layer)
BASH_LAYER_ACCOUNT = "744348701589"
BASH_LAYER_NAME = "bash"
BASH_LAYER_VERSION = 3

ROLE_PROPAGATION_DELAY = 20
TAIL_POLL_INTERVAL = 2
TAIL_START_SECONDS_AGO = 3600

DEFAULT_POLICY = "AdministratorAccess"
MANAGED_POLICY_PREFIX = "arn:aws:iam::aws:policy/"

# First botocore release that knows about Lambda layers
MIN_BOTOCORE_VERSION = "1.12.56"

REGION_ENV_VAR = "AWS_DEFAULT_REGION"

TEMPLATE_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "templates")
ASSUME_ROLE_POLICY_TEMPLATE = os.path.join(TEMPLATE_DIR, "assume_role_policy.json")
S3_EVENT_TEMPLATE = os.path.join(TEMPLATE_DIR, "s3_event.json")


def resolve_region(region: Optional[str], environ: Optional[Mapping[str, str]] = None) -> str:
    """
    Pick the region from the command line, falling back to AWS_DEFAULT_REGION.

    Raises:
        EnvironmentValidationError: If neither is set
    """
    if region:
        return region

    environ = os.environ if environ is None else environ
    region = environ.get(REGION_ENV_VAR)
    if not region:
        raise EnvironmentValidationError(
            f"must specify a region via env variable {REGION_ENV_VAR} or -r param"
        )
    return region


def resolve_policy_arn(policy: Optional[str]) -> str:
    """Turn a managed policy short name into its ARN. Full ARNs pass through."""
    if not policy:
        return MANAGED_POLICY_PREFIX + DEFAULT_POLICY
    if policy.startswith("arn:"):
        return policy
    return MANAGED_POLICY_PREFIX + policy


def bash_layer_arn(region: str) -> str:
    return f"arn:aws:lambda:{region}:{BASH_LAYER_ACCOUNT}:layer:{BASH_LAYER_NAME}:{BASH_LAYER_VERSION}"
