"""
S3 notification manager for Lambda functions.
Handles wiring an S3 bucket to invoke a Lambda function on object events.
"""
import copy
import json
import logging
import re
from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import ClientError

from bash_lambda.config import S3_EVENT_TEMPLATE

logger = logging.getLogger(__name__)


def load_notification_template(path: str = S3_EVENT_TEMPLATE) -> Dict[str, Any]:
    with open(path) as template_file:
        return json.load(template_file)


def build_notification_configuration(template: Dict[str, Any], function_arn: str) -> Dict[str, Any]:
    """
    Point every Lambda configuration in a notification template at a function.

    The template is copied, never modified.

    Args:
        template: Bucket notification configuration document
        function_arn: ARN of the function to notify

    Returns:
        A new configuration document

    Raises:
        ValueError: If the template has no Lambda function configurations
    """
    configuration = copy.deepcopy(template)
    lambda_configurations = configuration.get('LambdaFunctionConfigurations')
    if not lambda_configurations:
        raise ValueError("Notification template has no LambdaFunctionConfigurations")

    for entry in lambda_configurations:
        entry['LambdaFunctionArn'] = function_arn

    return configuration


def bucket_arn(bucket: str) -> str:
    return f"arn:aws:s3:::{bucket}"


def permission_statement_id(bucket: str) -> str:
    # Statement ids allow only letters, digits, '-' and '_'
    return "s3-invoke-" + re.sub(r'[^A-Za-z0-9_-]', '-', bucket)


class S3NotificationManager:
    """
    Manages S3 bucket notifications that trigger Lambda functions.

    This class handles:
    - Building the notification document from a template
    - Granting S3 permission to invoke the function
    - Applying the notification configuration to the bucket
    """

    def __init__(self, region_name: Optional[str] = None):
        """
        Initialize the S3 notification manager.

        Args:
            region_name: AWS region name. If not provided, uses the default region.
        """
        self.s3_client = boto3.client('s3', region_name=region_name)
        self.lambda_client = boto3.client('lambda', region_name=region_name)

    def _add_invoke_permission(self, function_name: str, bucket: str) -> None:
        """
        Allow S3 to invoke a Lambda function on behalf of a bucket.

        A statement left over from an earlier deploy is kept as is.

        Args:
            function_name: Name of the Lambda function
            bucket: Name of the S3 bucket
        """
        try:
            logger.info(f"Adding permission for s3 to invoke function {function_name}")
            self.lambda_client.add_permission(
                FunctionName=function_name,
                StatementId=permission_statement_id(bucket),
                Action='lambda:InvokeFunction',
                Principal='s3.amazonaws.com',
                SourceArn=bucket_arn(bucket)
            )
        except ClientError as e:
            if e.response['Error']['Code'] == 'ResourceConflictException':
                logger.info(f"S3 already has permission to invoke function {function_name} from bucket {bucket}")
                return
            logger.error(f"Error adding invoke permission on {function_name} for bucket {bucket}: {e}")
            raise

    def _put_notification_configuration(self, bucket: str, configuration: Dict[str, Any]) -> None:
        try:
            self.s3_client.put_bucket_notification_configuration(
                Bucket=bucket,
                NotificationConfiguration=configuration
            )
        except ClientError as e:
            logger.error(f"Error applying notification configuration to bucket {bucket}: {e}")
            raise

    def configure_bucket_notification(
        self,
        function_name: str,
        function_arn: str,
        bucket: str,
        template_path: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Make a bucket invoke a Lambda function on the events named in the template.

        Args:
            function_name: Name of the Lambda function
            function_arn: ARN of the Lambda function
            bucket: Name of the S3 bucket to watch
            template_path: Notification template to use (default: the bundled one)

        Returns:
            The notification configuration applied to the bucket
        """
        template = load_notification_template(template_path or S3_EVENT_TEMPLATE)
        configuration = build_notification_configuration(template, function_arn)
        logger.info(f"Built s3 event config with FunctionArn: {function_arn}")

        self._add_invoke_permission(function_name, bucket)

        logger.info(f"Attaching bucket-notification to bucket {bucket} for lambda {function_name}")
        self._put_notification_configuration(bucket, configuration)

        return configuration
