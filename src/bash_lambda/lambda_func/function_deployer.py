"""
Lambda function deployer module.
Handles deployment, invocation, and removal of script Lambda functions.
"""
import base64
import logging
from typing import Any, Dict, Optional, Tuple

import boto3
from botocore.exceptions import ClientError

from bash_lambda.config import MEMORY_SIZE, RUNTIME, TIMEOUT, bash_layer_arn
from bash_lambda.exceptions import FunctionNotFoundError
from bash_lambda.lambda_func.script_package import ScriptPackage

logger = logging.getLogger(__name__)

# Stream sources need a starting position; SQS and other queues reject one
STREAM_SERVICES = ('kinesis', 'dynamodb')


def event_source_service(event_source_arn: str) -> str:
    """Return the service part of an ARN, e.g. ``sqs`` for ``arn:aws:sqs:...``."""
    parts = event_source_arn.split(':')
    if len(parts) < 6 or parts[0] != 'arn':
        raise ValueError(f"Invalid event source ARN: {event_source_arn}")
    return parts[2]


class LambdaFunctionDeployer:
    """
    Deploys shell scripts to AWS Lambda functions.

    This class handles:
    - Creating functions on the bash custom runtime layer
    - Replacing the code of existing functions
    - Invoking functions and returning their log tail
    - Describing and deleting functions
    - Attaching event source mappings
    """

    def __init__(self, region_name: Optional[str] = None):
        """
        Initialize the Lambda function deployer.

        Args:
            region_name: AWS region name. If not provided, uses the default region.
        """
        self.lambda_client = boto3.client('lambda', region_name=region_name)
        self.region_name = region_name or self.lambda_client.meta.region_name

    def function_exists(self, function_name: str) -> bool:
        """
        Check if a Lambda function exists.

        Args:
            function_name: Name of the Lambda function to check

        Returns:
            True if the function exists, False otherwise
        """
        try:
            self.lambda_client.get_function(FunctionName=function_name)
            return True
        except ClientError as e:
            if e.response['Error']['Code'] == 'ResourceNotFoundException':
                return False
            raise

    def get_function_arn(self, function_name: str) -> str:
        response = self.lambda_client.get_function(FunctionName=function_name)
        return response['Configuration']['FunctionArn']

    def _create_function(
        self,
        package: ScriptPackage,
        role_arn: str,
        memory_size: int = MEMORY_SIZE,
        timeout: int = TIMEOUT
    ) -> str:
        """
        Create a new Lambda function from a script.

        Args:
            package: The script to deploy
            role_arn: ARN of the IAM role for the Lambda function
            memory_size: Memory size for the Lambda function in MB
            timeout: Timeout for the Lambda function in seconds

        Returns:
            ARN of the created Lambda function
        """
        function_name = package.names.function_name
        zip_bytes = package.build_zip()

        try:
            logger.info(f"Deploying function {function_name}")
            response = self.lambda_client.create_function(
                FunctionName=function_name,
                Runtime=RUNTIME,
                Role=role_arn,
                Handler=package.names.handler,
                Code={'ZipFile': zip_bytes},
                MemorySize=memory_size,
                Timeout=timeout,
                Layers=[bash_layer_arn(self.region_name)]
            )

            function_arn = response['FunctionArn']
            logger.info(f"Created Lambda function: {function_arn}")

            # Wait for function to be active
            waiter = self.lambda_client.get_waiter('function_active')
            waiter.wait(FunctionName=function_name)

            return function_arn

        except ClientError as e:
            logger.error(f"Error creating Lambda function {function_name}: {e}")
            raise

    def get_or_create_function(self, package: ScriptPackage, role_arn: str) -> Tuple[str, bool]:
        """
        Create the function for a script unless it already exists.

        An existing function is left alone; its code is never overwritten here.
        Like the role check, existence and creation are separate calls and
        concurrent deploys can race between them.

        Args:
            package: The script to deploy
            role_arn: ARN of the execution role

        Returns:
            Tuple of the function ARN and whether it was created by this call
        """
        function_name = package.names.function_name

        if self.function_exists(function_name):
            logger.warning(f"Function {function_name} already deployed")
            return self.get_function_arn(function_name), False

        return self._create_function(package, role_arn), True

    def update_function_code(self, package: ScriptPackage) -> str:
        """
        Replace the code of an existing function with the current script.

        Args:
            package: The script to upload

        Returns:
            ARN of the updated Lambda function

        Raises:
            FunctionNotFoundError: If the function has not been deployed
        """
        function_name = package.names.function_name
        if not self.function_exists(function_name):
            raise FunctionNotFoundError(function_name)

        zip_bytes = package.build_zip()

        try:
            logger.info(f"Updating function {function_name} code")
            response = self.lambda_client.update_function_code(
                FunctionName=function_name,
                ZipFile=zip_bytes
            )

            function_arn = response['FunctionArn']
            logger.info(f"Updated Lambda function code: {function_arn}")

            # Wait for function to be updated
            waiter = self.lambda_client.get_waiter('function_updated')
            waiter.wait(FunctionName=function_name)

            return function_arn

        except ClientError as e:
            logger.error(f"Error updating Lambda function code for {function_name}: {e}")
            raise

    def invoke_with_log_tail(self, function_name: str) -> Dict[str, Any]:
        """
        Invoke a function synchronously and collect the tail of its log.

        The response payload is discarded.

        Args:
            function_name: Name of the Lambda function

        Returns:
            Dictionary with the decoded ``log``, the ``status_code`` and any ``function_error``

        Raises:
            FunctionNotFoundError: If the function has not been deployed
        """
        if not self.function_exists(function_name):
            raise FunctionNotFoundError(function_name)

        try:
            logger.info(f"Invoking lambda {function_name}")
            response = self.lambda_client.invoke(
                FunctionName=function_name,
                InvocationType='RequestResponse',
                LogType='Tail'
            )
        except ClientError as e:
            logger.error(f"Error invoking Lambda function {function_name}: {e}")
            raise

        log_result = response.get('LogResult', '')
        log = base64.b64decode(log_result).decode('utf-8', errors='replace') if log_result else ''

        function_error = response.get('FunctionError')
        if function_error:
            logger.warning(f"Lambda function {function_name} returned an error: {function_error}")

        return {
            'log': log,
            'status_code': response.get('StatusCode'),
            'function_error': function_error
        }

    def describe_function(self, function_name: str) -> Optional[Dict[str, Any]]:
        """
        Get the full description of a function.

        Args:
            function_name: Name of the Lambda function

        Returns:
            The get_function response without its metadata, or None if the function does not exist
        """
        try:
            response = self.lambda_client.get_function(FunctionName=function_name)
        except ClientError as e:
            if e.response['Error']['Code'] == 'ResourceNotFoundException':
                logger.warning(f"Lambda function {function_name} does not exist")
                return None
            raise

        response.pop('ResponseMetadata', None)
        return response

    def delete_function(self, function_name: str) -> bool:
        """
        Delete a function if it exists.

        Args:
            function_name: Name of the Lambda function

        Returns:
            True if the function was deleted, False if it did not exist
        """
        if not self.function_exists(function_name):
            logger.warning(f"Lambda function {function_name} does not exist")
            return False

        try:
            logger.info(f"Deleting lambda {function_name}")
            self.lambda_client.delete_function(FunctionName=function_name)
        except ClientError as e:
            logger.error(f"Error deleting Lambda function {function_name}: {e}")
            raise

        return True

    def create_event_source_mapping(self, function_name: str, event_source_arn: str) -> str:
        """
        Subscribe a function to a stream or queue.

        Args:
            function_name: Name of the Lambda function
            event_source_arn: ARN of a Kinesis stream, DynamoDB stream or SQS queue

        Returns:
            UUID of the event source mapping
        """
        params = {
            'EventSourceArn': event_source_arn,
            'FunctionName': function_name,
            'Enabled': True,
        }

        if event_source_service(event_source_arn) in STREAM_SERVICES:
            params['StartingPosition'] = 'LATEST'

        try:
            logger.info(f"Attaching event source arn {event_source_arn} to function {function_name}")
            response = self.lambda_client.create_event_source_mapping(**params)
            return response['UUID']
        except ClientError as e:
            logger.error(f"Error attaching event source {event_source_arn} to {function_name}: {e}")
            raise
