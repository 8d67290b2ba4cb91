"""
bash-lambda - deploy shell scripts as AWS Lambda functions.

This package wraps a shell script in a zip, deploys it behind the public bash
custom runtime layer and manages the surrounding IAM role, triggers and logs.
"""

__version__ = "0.1.0"
