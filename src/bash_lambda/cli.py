#!/usr/bin/env python3
"""
Command-line interface for bash-lambda.
"""
import argparse
import json
import logging
import os
import sys
from typing import Callable, Dict, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from bash_lambda.config import DEFAULT_POLICY, REGION_ENV_VAR, resolve_region
from bash_lambda.environment.validator import EnvironmentValidator
from bash_lambda.exceptions import BashLambdaError, EnvironmentValidationError
from bash_lambda.lambda_func.function_deployer import event_source_service
from bash_lambda.main import ScriptLambdaDeployer

OPERATIONS = ("deploy", "run", "tail", "update", "describe", "destroy")

START_MARKER = "---------START RESPONSE------------"
END_MARKER = "---------END RESPONSE------------"

EPILOG = """\
generally deploy first, then run, then update, then destroy.

notes: the script must define a shell function called "handler"; the bash
runtime layer calls it with the triggering event JSON as its first argument.
policy (-p), event (-e), bucket (-b) and notification config (-n) are only
used by deploy, not by update.
"""

logger = logging.getLogger("bash_lambda.cli")


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application."""
    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bash-lambda",
        description="Deploy a bash shell script to AWS Lambda using the bash runtime layer",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "-o", "--operation",
        required=True,
        choices=OPERATIONS,
        help="Operation to perform"
    )
    parser.add_argument(
        "-s", "--script",
        required=True,
        help="The bash script to turn into a lambda"
    )
    parser.add_argument(
        "-r", "--region",
        help=f"AWS region (default: the {REGION_ENV_VAR} environment variable)"
    )
    parser.add_argument(
        "-p", "--policy",
        help=f"AWS managed policy name or ARN attached to the execution role (default: {DEFAULT_POLICY})"
    )
    parser.add_argument(
        "-e", "--event-arn",
        help="Kinesis, DynamoDB Streams or SQS ARN that triggers the lambda"
    )
    parser.add_argument(
        "-b", "--bucket",
        help="S3 bucket whose notifications trigger the lambda"
    )
    parser.add_argument(
        "-n", "--notification-config",
        help="Bucket notification template (default: the bundled s3_event.json)"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )

    return parser


def deploy_command(deployer: ScriptLambdaDeployer, args: argparse.Namespace) -> int:
    """Handle the deploy command."""
    result = deployer.deploy(
        policy=args.policy,
        event_source_arn=args.event_arn,
        bucket=args.bucket,
        notification_template=args.notification_config
    )
    logger.info(f"Function {result['function_arn']} uses role {result['role_arn']}")
    return 0


def update_command(deployer: ScriptLambdaDeployer, args: argparse.Namespace) -> int:
    """Handle the update command."""
    deployer.update()
    return 0


def run_command(deployer: ScriptLambdaDeployer, args: argparse.Namespace) -> int:
    """Handle the run command."""
    result = deployer.run()
    print(START_MARKER)
    print(result["log"], end="" if result["log"].endswith("\n") else "\n")
    print(END_MARKER)
    return 0


def describe_command(deployer: ScriptLambdaDeployer, args: argparse.Namespace) -> int:
    """Handle the describe command."""
    description = deployer.describe()
    if description is not None:
        logger.info(f"Getting lambda {deployer.names.function_name}")
        print(json.dumps(description, indent=4, default=str))
    return 0


def tail_command(deployer: ScriptLambdaDeployer, args: argparse.Namespace) -> int:
    """Handle the tail command."""
    deployer.tail()
    return 0


def destroy_command(deployer: ScriptLambdaDeployer, args: argparse.Namespace) -> int:
    """Handle the destroy command."""
    deployer.destroy()
    return 0


COMMANDS: Dict[str, Callable[[ScriptLambdaDeployer, argparse.Namespace], int]] = {
    "deploy": deploy_command,
    "update": update_command,
    "run": run_command,
    "describe": describe_command,
    "tail": tail_command,
    "destroy": destroy_command,
}


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    parsed_args = parser.parse_args(args)
    setup_logging(parsed_args.verbose)

    if not os.path.isfile(parsed_args.script):
        logger.error(f"Script {parsed_args.script} does not exist")
        parser.print_usage(sys.stderr)
        return 1

    if parsed_args.notification_config and not os.path.isfile(parsed_args.notification_config):
        logger.error(f"Notification config {parsed_args.notification_config} does not exist")
        parser.print_usage(sys.stderr)
        return 1

    if parsed_args.event_arn:
        try:
            event_source_service(parsed_args.event_arn)
        except ValueError as e:
            logger.error(str(e))
            parser.print_usage(sys.stderr)
            return 1

    try:
        region = resolve_region(parsed_args.region)
    except EnvironmentValidationError as e:
        logger.error(str(e))
        parser.print_usage(sys.stderr)
        return 1

    try:
        EnvironmentValidator().validate(region)
        deployer = ScriptLambdaDeployer(parsed_args.script, region_name=region)
    except (BashLambdaError, ValueError) as e:
        logger.error(str(e))
        return 1
    except (ClientError, BotoCoreError) as e:
        logger.error(f"Environment validation failed: {e}")
        return 1

    command = COMMANDS[parsed_args.operation]
    try:
        return command(deployer, parsed_args)
    except BashLambdaError as e:
        logger.error(str(e))
        return 1
    except (ClientError, BotoCoreError, ValueError) as e:
        logger.error(f"{parsed_args.operation} failed: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
