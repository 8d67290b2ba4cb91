"""
Main orchestration for bash-lambda.

This module ties together the IAM, Lambda, S3 and CloudWatch Logs managers to
implement the deploy, update, run, describe, tail and destroy operations for a
single shell script.
"""
import logging
from typing import Any, Dict, Optional

from bash_lambda.config import resolve_policy_arn
from bash_lambda.iam.role_manager import IAMRoleManager
from bash_lambda.lambda_func.function_deployer import LambdaFunctionDeployer, event_source_service
from bash_lambda.lambda_func.script_package import ScriptPackage
from bash_lambda.logs.tailer import LogTailer
from bash_lambda.s3.notification_manager import S3NotificationManager


class ScriptLambdaDeployer:
    """
    Manages the Lambda function deployed from one shell script.

    Every resource name is derived from the script file name, so repeated runs
    against the same script address the same role and function:
    - IAM execution role ``<name>_lambdarole``
    - Lambda function ``<name>`` with handler ``<name>.handler``
    - Optional event source mapping and S3 bucket notification
    """

    def __init__(self, script_path: str, region_name: Optional[str] = None):
        """
        Initialize the deployer.

        Args:
            script_path: Path to the shell script
            region_name: AWS region name. If not provided, uses the default region.
        """
        self.region_name = region_name
        self.package = ScriptPackage(script_path)
        self.names = self.package.names
        self.iam_manager = IAMRoleManager(region_name=region_name)
        self.lambda_deployer = LambdaFunctionDeployer(region_name=region_name)
        self.s3_manager = S3NotificationManager(region_name=region_name)
        self.logger = logging.getLogger(__name__)

    def deploy(
        self,
        policy: Optional[str] = None,
        event_source_arn: Optional[str] = None,
        bucket: Optional[str] = None,
        notification_template: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Deploy the script as a Lambda function.

        The role and the function are only created when missing; an existing
        function keeps its code. A failure part way leaves whatever was
        already created for the next deploy to pick up.

        Args:
            policy: Managed policy name or ARN for a new role (default: AdministratorAccess)
            event_source_arn: Stream or queue ARN to subscribe the function to (optional)
            bucket: S3 bucket whose notifications should invoke the function (optional)
            notification_template: Notification template path (default: the bundled one)

        Returns:
            Dictionary containing deployment information

        Raises:
            ValueError: If event_source_arn is not an ARN
        """
        policy_arn = resolve_policy_arn(policy)
        if event_source_arn:
            event_source_service(event_source_arn)

        role_arn = self.iam_manager.get_or_create_role(
            role_name=self.names.role_name,
            policy_arn=policy_arn
        )

        function_arn, created = self.lambda_deployer.get_or_create_function(
            package=self.package,
            role_arn=role_arn
        )

        result = {
            "role_arn": role_arn,
            "function_arn": function_arn,
            "function_created": created
        }

        if event_source_arn:
            result["event_source_mapping_uuid"] = self.lambda_deployer.create_event_source_mapping(
                function_name=self.names.function_name,
                event_source_arn=event_source_arn
            )

        if bucket:
            result["notification_configuration"] = self.s3_manager.configure_bucket_notification(
                function_name=self.names.function_name,
                function_arn=self.lambda_deployer.get_function_arn(self.names.function_name),
                bucket=bucket,
                template_path=notification_template
            )

        return result

    def update(self) -> str:
        """
        Replace the function code with the current script.

        Role, policy, memory, timeout and triggers are left as deployed.

        Returns:
            ARN of the updated function
        """
        return self.lambda_deployer.update_function_code(self.package)

    def run(self) -> Dict[str, Any]:
        """Invoke the function once and return its decoded log tail."""
        return self.lambda_deployer.invoke_with_log_tail(self.names.function_name)

    def describe(self) -> Optional[Dict[str, Any]]:
        return self.lambda_deployer.describe_function(self.names.function_name)

    def tail(self, max_polls: Optional[int] = None) -> int:
        """
        Follow the function's CloudWatch logs.

        Args:
            max_polls: Stop after this many polls (default: run until interrupted)

        Returns:
            The log cursor after the last poll
        """
        tailer = LogTailer(self.names.function_name, region_name=self.region_name)
        return tailer.tail(max_polls=max_polls)

    def destroy(self) -> Dict[str, bool]:
        """
        Delete the function and its execution role.

        Each half runs whether or not the other resource exists. Event source
        mappings and bucket notifications created by deploy are not removed.

        Returns:
            Dictionary telling which of function and role were deleted
        """
        function_deleted = self.lambda_deployer.delete_function(self.names.function_name)
        role_deleted = self.iam_manager.delete_role(self.names.role_name)

        self.logger.info(
            "Event source mappings and bucket notifications for "
            f"{self.names.function_name} are not removed; delete them manually if needed"
        )

        return {
            "function_deleted": function_deleted,
            "role_deleted": role_deleted
        }
