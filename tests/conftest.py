"""
Pytest configuration file for bash-lambda tests.
"""
from unittest.mock import MagicMock, patch

import boto3
import moto
import pytest


@pytest.fixture
def aws_credentials():
    """Mocked AWS Credentials for moto."""
    with patch.dict('os.environ', {
        'AWS_ACCESS_KEY_ID': 'testing',
        'AWS_SECRET_ACCESS_KEY': 'testing',
        'AWS_SECURITY_TOKEN': 'testing',
        'AWS_SESSION_TOKEN': 'testing',
        'AWS_DEFAULT_REGION': 'us-east-1',
    }):
        yield


@pytest.fixture
def mocked_aws(aws_credentials):
    """Run the test inside a single moto mock."""
    with moto.mock_aws():
        yield


@pytest.fixture
def iam_client(mocked_aws):
    """IAM client fixture."""
    return boto3.client('iam')


@pytest.fixture
def ec2_client(mocked_aws):
    """EC2 client fixture."""
    return boto3.client('ec2')


@pytest.fixture
def aws_clients(aws_credentials):
    """
    Patch boto3.client to hand out one MagicMock per service.

    Yields the dictionary of mocks keyed by service name.
    """
    clients = {}

    def _client(service_name, *args, **kwargs):
        if service_name not in clients:
            clients[service_name] = MagicMock(name=f"{service_name}_client")
        return clients[service_name]

    with patch('boto3.client', side_effect=_client):
        yield clients


@pytest.fixture
def script_file(tmp_path):
    """A shell script called foo.sh defining a handler."""
    path = tmp_path / "foo.sh"
    path.write_text('handler () {\n    echo "hello from foo"\n}\n')
    return str(path)
