"""
Unit tests for the main ScriptLambdaDeployer class.
"""
import pytest
from unittest.mock import patch, MagicMock

from botocore.exceptions import ClientError

from bash_lambda.main import ScriptLambdaDeployer

ROLE_ARN = 'arn:aws:iam::123456789012:role/foo_lambdarole'
FUNCTION_ARN = 'arn:aws:lambda:us-east-1:123456789012:function:foo'


def missing(code, operation_name):
    return ClientError({'Error': {'Code': code, 'Message': 'missing'}}, operation_name)


@pytest.fixture
def no_sleep():
    with patch('bash_lambda.iam.role_manager.time.sleep') as mock_sleep:
        yield mock_sleep


@patch('bash_lambda.main.S3NotificationManager')
@patch('bash_lambda.main.LambdaFunctionDeployer')
@patch('bash_lambda.main.IAMRoleManager')
def test_deploy_without_triggers(mock_iam_manager, mock_lambda_deployer, mock_s3_manager, script_file, aws_credentials):
    """Test deploying with the default policy and no triggers."""
    mock_iam_instance = mock_iam_manager.return_value
    mock_iam_instance.get_or_create_role.return_value = ROLE_ARN
    mock_lambda_instance = mock_lambda_deployer.return_value
    mock_lambda_instance.get_or_create_function.return_value = (FUNCTION_ARN, True)

    deployer = ScriptLambdaDeployer(script_file, region_name='us-east-1')
    result = deployer.deploy()

    mock_iam_instance.get_or_create_role.assert_called_once_with(
        role_name='foo_lambdarole',
        policy_arn='arn:aws:iam::aws:policy/AdministratorAccess'
    )
    mock_lambda_instance.get_or_create_function.assert_called_once_with(
        package=deployer.package,
        role_arn=ROLE_ARN
    )
    mock_lambda_instance.create_event_source_mapping.assert_not_called()
    mock_s3_manager.return_value.configure_bucket_notification.assert_not_called()

    assert result == {
        'role_arn': ROLE_ARN,
        'function_arn': FUNCTION_ARN,
        'function_created': True
    }


@patch('bash_lambda.main.S3NotificationManager')
@patch('bash_lambda.main.LambdaFunctionDeployer')
@patch('bash_lambda.main.IAMRoleManager')
def test_deploy_with_event_source(mock_iam_manager, mock_lambda_deployer, mock_s3_manager, script_file, aws_credentials):
    """Test deploying with an event source and a custom policy."""
    mock_iam_manager.return_value.get_or_create_role.return_value = ROLE_ARN
    mock_lambda_instance = mock_lambda_deployer.return_value
    mock_lambda_instance.get_or_create_function.return_value = (FUNCTION_ARN, True)
    mock_lambda_instance.create_event_source_mapping.return_value = 'uuid-1'
    queue_arn = 'arn:aws:sqs:us-east-1:123456789012:jobs'

    result = ScriptLambdaDeployer(script_file, region_name='us-east-1').deploy(
        policy='AmazonSQSFullAccess',
        event_source_arn=queue_arn
    )

    mock_iam_manager.return_value.get_or_create_role.assert_called_once_with(
        role_name='foo_lambdarole',
        policy_arn='arn:aws:iam::aws:policy/AmazonSQSFullAccess'
    )
    mock_lambda_instance.create_event_source_mapping.assert_called_once_with(
        function_name='foo',
        event_source_arn=queue_arn
    )
    assert result['event_source_mapping_uuid'] == 'uuid-1'


def test_deploy_rejects_malformed_event_arn(script_file, aws_clients, no_sleep):
    """Test a bad event source ARN fails before any role or function exists."""
    deployer = ScriptLambdaDeployer(script_file, region_name='us-east-1')

    with pytest.raises(ValueError):
        deployer.deploy(event_source_arn='not-an-arn')

    aws_clients['iam'].get_role.assert_not_called()
    aws_clients['iam'].create_role.assert_not_called()
    aws_clients['lambda'].get_function.assert_not_called()
    aws_clients['lambda'].create_function.assert_not_called()
    no_sleep.assert_not_called()


def test_deploy_end_to_end_with_bucket(script_file, aws_clients, no_sleep):
    """Test deploying foo.sh with bucket my-bucket through every manager."""
    iam = MagicMock()
    iam.get_role.side_effect = [missing('NoSuchEntity', 'GetRole'), {'Role': {'Arn': ROLE_ARN}}]
    iam.create_role.return_value = {'Role': {'Arn': ROLE_ARN}}
    aws_clients['iam'] = iam

    lambda_client = MagicMock()
    lambda_client.get_function.side_effect = [
        missing('ResourceNotFoundException', 'GetFunction'),
        {'Configuration': {'FunctionArn': FUNCTION_ARN}},
    ]
    lambda_client.create_function.return_value = {'FunctionArn': FUNCTION_ARN}
    aws_clients['lambda'] = lambda_client

    result = ScriptLambdaDeployer(script_file, region_name='us-east-1').deploy(bucket='my-bucket')

    # (1) role with the default policy
    assert iam.create_role.call_args.kwargs['RoleName'] == 'foo_lambdarole'
    iam.attach_role_policy.assert_called_once_with(
        RoleName='foo_lambdarole',
        PolicyArn='arn:aws:iam::aws:policy/AdministratorAccess'
    )
    no_sleep.assert_called_once_with(20)

    # (2) function foo with handler foo.handler
    create_kwargs = lambda_client.create_function.call_args.kwargs
    assert create_kwargs['FunctionName'] == 'foo'
    assert create_kwargs['Handler'] == 'foo.handler'
    assert create_kwargs['Role'] == ROLE_ARN

    # (3) every notification entry targets the new function
    configuration = result['notification_configuration']
    assert configuration['LambdaFunctionConfigurations']
    assert all(c['LambdaFunctionArn'] == FUNCTION_ARN for c in configuration['LambdaFunctionConfigurations'])

    # (4) invoke permission scoped to the bucket
    assert lambda_client.add_permission.call_args.kwargs['SourceArn'] == 'arn:aws:s3:::my-bucket'

    # (5) the configuration is applied to the bucket
    aws_clients['s3'].put_bucket_notification_configuration.assert_called_once_with(
        Bucket='my-bucket',
        NotificationConfiguration=configuration
    )


def test_deploy_twice_only_warns(script_file, aws_clients, no_sleep, caplog):
    """Test a repeated deploy creates neither role nor function."""
    iam = MagicMock()
    iam.get_role.return_value = {'Role': {'Arn': ROLE_ARN}}
    aws_clients['iam'] = iam
    lambda_client = MagicMock()
    lambda_client.get_function.return_value = {'Configuration': {'FunctionArn': FUNCTION_ARN}}
    aws_clients['lambda'] = lambda_client

    result = ScriptLambdaDeployer(script_file, region_name='us-east-1').deploy()

    iam.create_role.assert_not_called()
    iam.attach_role_policy.assert_not_called()
    lambda_client.create_function.assert_not_called()
    lambda_client.update_function_code.assert_not_called()
    no_sleep.assert_not_called()
    assert result['function_created'] is False
    assert "Function foo already deployed" in caplog.text


@pytest.mark.parametrize("function_present, role_present", [
    (True, True),
    (True, False),
    (False, True),
    (False, False),
])
def test_destroy_attempts_both_resources(script_file, aws_clients, function_present, role_present):
    """Test destroy handles function and role independently."""
    lambda_client = MagicMock()
    if not function_present:
        lambda_client.get_function.side_effect = missing('ResourceNotFoundException', 'GetFunction')
    aws_clients['lambda'] = lambda_client

    iam = MagicMock()
    if not role_present:
        iam.get_role.side_effect = missing('NoSuchEntity', 'GetRole')
    iam.list_attached_role_policies.return_value = {
        'AttachedPolicies': [{'PolicyArn': 'arn:aws:iam::aws:policy/AdministratorAccess'}],
        'IsTruncated': False
    }
    iam.list_role_policies.return_value = {'PolicyNames': [], 'IsTruncated': False}
    aws_clients['iam'] = iam

    result = ScriptLambdaDeployer(script_file, region_name='us-east-1').destroy()

    assert result == {'function_deleted': function_present, 'role_deleted': role_present}
    assert lambda_client.delete_function.called == function_present
    assert iam.delete_role.called == role_present
    if role_present:
        iam.detach_role_policy.assert_called_once_with(
            RoleName='foo_lambdarole',
            PolicyArn='arn:aws:iam::aws:policy/AdministratorAccess'
        )


def test_destroy_leaves_triggers(script_file, aws_clients, caplog):
    """Test destroy does not touch event source mappings or bucket notifications."""
    caplog.set_level('INFO')
    aws_clients['iam'] = MagicMock(**{
        'list_attached_role_policies.return_value': {'AttachedPolicies': []},
        'list_role_policies.return_value': {'PolicyNames': []},
    })

    ScriptLambdaDeployer(script_file, region_name='us-east-1').destroy()

    aws_clients['lambda'].delete_event_source_mapping.assert_not_called()
    aws_clients['s3'].put_bucket_notification_configuration.assert_not_called()
    assert "are not removed" in caplog.text


@patch('bash_lambda.main.LogTailer')
def test_tail(mock_log_tailer, script_file, aws_clients):
    mock_log_tailer.return_value.tail.return_value = 42

    assert ScriptLambdaDeployer(script_file, region_name='us-east-1').tail(max_polls=1) == 42

    mock_log_tailer.assert_called_once_with('foo', region_name='us-east-1')
    mock_log_tailer.return_value.tail.assert_called_once_with(max_polls=1)
