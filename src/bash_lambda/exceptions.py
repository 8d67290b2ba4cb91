"""
Exceptions raised by bash-lambda.
"""


class BashLambdaError(Exception):
    """Base class for errors reported by the tool itself."""


class EnvironmentValidationError(BashLambdaError):
    """The local environment cannot be used: region, client version or credentials."""


class FunctionNotFoundError(BashLambdaError):
    """An operation needs a deployed function that does not exist."""

    def __init__(self, function_name: str):
        self.function_name = function_name
        super().__init__(f"lambda function {function_name} does not exist")
