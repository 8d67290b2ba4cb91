"""
Environment validation for bash-lambda.
Checks the AWS client library, credentials and region before any resource is touched.
"""
import logging
from typing import List, Optional

import boto3
import botocore
import packaging.version
from botocore.exceptions import ClientError

from bash_lambda.config import MIN_BOTOCORE_VERSION
from bash_lambda.exceptions import EnvironmentValidationError

logger = logging.getLogger(__name__)

# describe_regions is answered by any enabled region; ask a stable one
REGION_LOOKUP_REGION = "us-east-1"


class EnvironmentValidator:
    """
    Validates the local environment against what bash-lambda needs.

    This class handles:
    - Checking the installed botocore version supports Lambda layers
    - Checking that AWS credentials can be resolved
    - Checking a region name against the regions enabled for the account
    """

    def __init__(self, lookup_region: str = REGION_LOOKUP_REGION):
        """
        Initialize the environment validator.

        Args:
            lookup_region: Region whose EC2 endpoint is used to enumerate regions.
        """
        self.session = boto3.session.Session()
        self.ec2_client = boto3.client('ec2', region_name=lookup_region)

    def check_client_version(self, minimum: str = MIN_BOTOCORE_VERSION, installed: Optional[str] = None) -> None:
        """
        Make sure the installed botocore is recent enough.

        Args:
            minimum: Lowest acceptable version
            installed: Version to check (default: the imported botocore)

        Raises:
            EnvironmentValidationError: If the installed version is older than minimum
        """
        installed = installed or botocore.__version__
        if packaging.version.parse(installed) < packaging.version.parse(minimum):
            raise EnvironmentValidationError(
                f"botocore version must be {minimum} or greater (found {installed})"
            )
        logger.debug(f"botocore version {installed} satisfies minimum {minimum}")

    def check_credentials(self) -> None:
        """
        Make sure boto3 can resolve AWS credentials.

        Raises:
            EnvironmentValidationError: If no credentials are configured
        """
        if self.session.get_credentials() is None:
            raise EnvironmentValidationError(
                "no AWS credentials found; configure them with environment variables or a profile"
            )

    def get_region_names(self) -> List[str]:
        """
        List the region names enabled for the account.

        Returns:
            Region names as reported by EC2
        """
        try:
            response = self.ec2_client.describe_regions()
            return [region['RegionName'] for region in response.get('Regions', [])]
        except ClientError as e:
            logger.error(f"Error listing AWS regions: {e}")
            raise

    def is_valid_region(self, region: str) -> bool:
        return region in self.get_region_names()

    def validate_region(self, region: str) -> None:
        """
        Raises:
            EnvironmentValidationError: If region is not a known region name
        """
        if not self.is_valid_region(region):
            raise EnvironmentValidationError(f"invalid region name specified: {region}")
        logger.debug(f"Region {region} is valid")

    def validate(self, region: str) -> None:
        """
        Run every environment check in order.

        Args:
            region: Resolved region name to validate
        """
        self.check_client_version()
        self.check_credentials()
        self.validate_region(region)
