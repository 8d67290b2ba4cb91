"""
IAM role manager for script Lambda functions.
Handles creation, lookup, and teardown of execution roles.
"""
import json
import logging
import time
from typing import Dict, List, Optional

import boto3
from botocore.exceptions import ClientError

from bash_lambda.config import ASSUME_ROLE_POLICY_TEMPLATE, ROLE_PROPAGATION_DELAY

logger = logging.getLogger(__name__)


def load_trust_policy(path: str = ASSUME_ROLE_POLICY_TEMPLATE) -> Dict:
    with open(path) as policy_file:
        return json.load(policy_file)


class IAMRoleManager:
    """
    Manages execution roles for script Lambda functions.

    This class handles:
    - Creating the execution role with the Lambda trust policy
    - Attaching a managed policy to the role
    - Waiting for a new role to propagate through IAM
    - Detaching every policy and deleting the role
    """

    def __init__(self, region_name: Optional[str] = None, propagation_delay: int = ROLE_PROPAGATION_DELAY):
        """
        Initialize the IAM role manager.

        Args:
            region_name: AWS region name. If not provided, uses the default region.
            propagation_delay: Seconds to wait after creating a role before it is used.
        """
        self.iam_client = boto3.client('iam', region_name=region_name)
        self.propagation_delay = propagation_delay
        self.lambda_execution_trust_policy = load_trust_policy()

    def _role_exists(self, role_name: str) -> bool:
        """
        Check if an IAM role exists.

        Args:
            role_name: Name of the role to check

        Returns:
            True if the role exists, False otherwise
        """
        try:
            self.iam_client.get_role(RoleName=role_name)
            return True
        except ClientError as e:
            if e.response['Error']['Code'] == 'NoSuchEntity':
                return False
            raise

    def _create_role(self, role_name: str) -> str:
        """
        Create an IAM role for Lambda execution.

        Args:
            role_name: Name of the role to create

        Returns:
            ARN of the created role
        """
        try:
            response = self.iam_client.create_role(
                RoleName=role_name,
                AssumeRolePolicyDocument=json.dumps(self.lambda_execution_trust_policy),
                Description=f"Execution role for script Lambda function {role_name}"
            )
            role_arn = response['Role']['Arn']
            logger.info(f"Created IAM role: {role_arn}")
            return role_arn

        except ClientError as e:
            logger.error(f"Error creating role {role_name}: {e}")
            raise

    def _attach_policy(self, role_name: str, policy_arn: str) -> None:
        try:
            logger.info(f"Attaching IAM policy {policy_arn} to role {role_name}")
            self.iam_client.attach_role_policy(
                RoleName=role_name,
                PolicyArn=policy_arn
            )
        except ClientError as e:
            logger.error(f"Error attaching policy {policy_arn} to role {role_name}: {e}")
            raise

    def _wait_for_role_propagation(self, role_name: str) -> None:
        """
        Wait until a freshly created role can be handed to Lambda.

        The role_exists waiter only proves IAM can read the role back; Lambda
        may still reject it for a while, so a fixed delay follows.

        Args:
            role_name: Name of the new role
        """
        waiter = self.iam_client.get_waiter('role_exists')
        waiter.wait(RoleName=role_name)

        logger.info(f"Sleeping {self.propagation_delay} seconds to allow role {role_name} to propagate")
        time.sleep(self.propagation_delay)

    def get_role_arn(self, role_name: str) -> str:
        response = self.iam_client.get_role(RoleName=role_name)
        return response['Role']['Arn']

    def get_or_create_role(self, role_name: str, policy_arn: str) -> str:
        """
        Return the execution role, creating it with the given policy if it is missing.

        The existence check and the create call are separate requests, so two
        concurrent deploys may both try to create the role; the loser fails
        with EntityAlreadyExists.

        Args:
            role_name: Name of the IAM role
            policy_arn: ARN of the managed policy attached to a new role

        Returns:
            ARN of the role
        """
        if self._role_exists(role_name):
            logger.info(f"Role {role_name} already exists, using it")
        else:
            logger.info(f"Creating role {role_name}")
            self._create_role(role_name)
            self._attach_policy(role_name, policy_arn)
            self._wait_for_role_propagation(role_name)

        return self.get_role_arn(role_name)

    def _list_attached_policy_arns(self, role_name: str) -> List[str]:
        policy_arns = []
        response = self.iam_client.list_attached_role_policies(RoleName=role_name)
        policy_arns.extend(p['PolicyArn'] for p in response.get('AttachedPolicies', []))

        while response.get('IsTruncated', False):
            response = self.iam_client.list_attached_role_policies(
                RoleName=role_name,
                Marker=response['Marker']
            )
            policy_arns.extend(p['PolicyArn'] for p in response.get('AttachedPolicies', []))

        return policy_arns

    def _list_inline_policy_names(self, role_name: str) -> List[str]:
        policy_names = []
        response = self.iam_client.list_role_policies(RoleName=role_name)
        policy_names.extend(response.get('PolicyNames', []))

        while response.get('IsTruncated', False):
            response = self.iam_client.list_role_policies(
                RoleName=role_name,
                Marker=response['Marker']
            )
            policy_names.extend(response.get('PolicyNames', []))

        return policy_names

    def _detach_all_policies_from_role(self, role_name: str) -> None:
        """
        Detach all policies from a role.

        Args:
            role_name: Name of the role
        """
        try:
            for policy_arn in self._list_attached_policy_arns(role_name):
                logger.info(f"Detaching policy {policy_arn} from role {role_name}")
                self.iam_client.detach_role_policy(
                    RoleName=role_name,
                    PolicyArn=policy_arn
                )

            # Inline policies also block delete_role
            for policy_name in self._list_inline_policy_names(role_name):
                logger.info(f"Deleting inline policy {policy_name} from role {role_name}")
                self.iam_client.delete_role_policy(
                    RoleName=role_name,
                    PolicyName=policy_name
                )

        except ClientError as e:
            logger.error(f"Error detaching policies from role {role_name}: {e}")
            raise

    def delete_role(self, role_name: str) -> bool:
        """
        Detach every policy from a role and delete it.

        Args:
            role_name: Name of the role to delete

        Returns:
            True if the role was deleted, False if it did not exist
        """
        if not self._role_exists(role_name):
            logger.warning(f"Role {role_name} does not exist")
            return False

        self._detach_all_policies_from_role(role_name)

        try:
            self.iam_client.delete_role(RoleName=role_name)
            logger.info(f"Deleted role: {role_name}")
        except ClientError as e:
            logger.error(f"Error deleting role {role_name}: {e}")
            raise

        return True
