#!/usr/bin/env python3
"""
Example script for deploying a bash script to AWS Lambda, running it once and printing its log.
"""
import argparse
import logging
import os
import sys

from bash_lambda.main import ScriptLambdaDeployer


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application."""
    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()]
    )


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Example script for deploying a bash script to AWS Lambda and running it"
    )

    parser.add_argument(
        "--script",
        default=os.path.join(os.path.dirname(os.path.abspath(__file__)), "ex_script.sh"),
        help="Bash script to deploy (default: ex_script.sh next to this file)"
    )
    parser.add_argument(
        "--region",
        default="us-east-1",
        help="AWS region to deploy to"
    )
    parser.add_argument(
        "--policy",
        default="AmazonS3ReadOnlyAccess",
        help="AWS managed policy for the execution role"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging"
    )

    return parser.parse_args()


def main() -> int:
    """Main entry point for the example script."""
    args = parse_args()
    setup_logging(args.verbose)

    logger = logging.getLogger(__name__)
    logger.info("Starting example deployment")

    try:
        deployer = ScriptLambdaDeployer(args.script, region_name=args.region)

        result = deployer.deploy(policy=args.policy)
        logger.info(f"Deployed Lambda function: {result['function_arn']}")
        logger.info(f"Using IAM role: {result['role_arn']}")

        print(deployer.run()["log"])
        return 0

    except Exception as e:
        logger.error(f"Deployment failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
