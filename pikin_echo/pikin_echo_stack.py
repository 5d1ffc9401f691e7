import os

from aws_cdk import (
    CfnOutput,
    Duration,
    SecretValue,
    Stack,
    aws_apigateway as apigateway,
    aws_dynamodb as dynamodb,
    aws_iam as iam,
    aws_lambda as _lambda,
    aws_s3 as s3,
    aws_secretsmanager as secretsmanager,
)
from constructs import Construct

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
ASSET_EXCLUDES = [
    ".git",
    "cdk.out",
    "tests",
    ".venv",
    ".pytest_cache",
    "**/__pycache__",
    "*.md",
    "*.txt",
    "pyproject.toml",
]


class PikinEchoStack(Stack):
    def __init__(self, scope: Construct, construct_id: str, **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        stage_name = self.node.try_get_context("stageName") or "dev"
        memory_size = int(self.node.try_get_context("functionMemorySize") or 128)
        timeout_seconds = int(
            self.node.try_get_context("functionTimeoutSeconds") or 30
        )
        table_name = self.node.try_get_context("tableName") or "pikin-echo-table"
        ci_user_name = self.node.try_get_context("ciUserName") or "pikin-echo-ci"
        log_level = self.node.try_get_context("logLevel") or "INFO"

        echo_bucket = s3.Bucket(
            self,
            "PikinEchoBucket",
            encryption=s3.BucketEncryption.S3_MANAGED,
            block_public_access=s3.BlockPublicAccess.BLOCK_ALL,
            enforce_ssl=True,
        )

        echo_table = dynamodb.Table(
            self,
            "PikinEchoTable",
            table_name=table_name,
            partition_key=dynamodb.Attribute(
                name="id",
                type=dynamodb.AttributeType.STRING,
            ),
            billing_mode=dynamodb.BillingMode.PAY_PER_REQUEST,
        )

        execution_role = iam.Role(
            self,
            "PikinEchoExecutionRole",
            assumed_by=iam.ServicePrincipal("lambda.amazonaws.com"),
            managed_policies=[
                iam.ManagedPolicy.from_aws_managed_policy_name(
                    "service-role/AWSLambdaBasicExecutionRole"
                ),
            ],
        )
        echo_bucket.grant_read_write(execution_role)
        echo_table.grant_read_write_data(execution_role)

        echo_fn = _lambda.Function(
            self,
            "EchoFunction",
            runtime=_lambda.Runtime.PYTHON_3_11,
            handler="handlers.echo.echo_handler.handler",
            code=_lambda.Code.from_asset(PROJECT_ROOT, exclude=ASSET_EXCLUDES),
            role=execution_role,
            memory_size=memory_size,
            timeout=Duration.seconds(timeout_seconds),
            environment={
                "BUCKET_NAME": echo_bucket.bucket_name,
                "TABLE_NAME": echo_table.table_name,
                "STAGE": stage_name,
                "LOG_LEVEL": log_level,
            },
        )

        api = apigateway.RestApi(
            self,
            "PikinEchoApi",
            deploy_options=apigateway.StageOptions(stage_name=stage_name),
            default_cors_preflight_options=apigateway.CorsOptions(
                allow_origins=apigateway.Cors.ALL_ORIGINS,
                allow_methods=apigateway.Cors.ALL_METHODS,
            ),
        )
        echo_integration = apigateway.LambdaIntegration(echo_fn, proxy=True)
        api.root.add_method("ANY", echo_integration)
        api.root.add_proxy(default_integration=echo_integration, any_method=True)

        ci_user = iam.User(
            self,
            "PikinEchoCiUser",
            user_name=ci_user_name,
        )
        ci_user.add_to_policy(
            iam.PolicyStatement(
                actions=[
                    "lambda:GetFunction",
                    "lambda:GetFunctionConfiguration",
                    "lambda:UpdateFunctionCode",
                    "lambda:UpdateFunctionConfiguration",
                    "lambda:PublishVersion",
                ],
                resources=[echo_fn.function_arn],
            )
        )
        ci_access_key = iam.AccessKey(
            self,
            "PikinEchoCiAccessKey",
            user=ci_user,
        )
        ci_credentials = secretsmanager.Secret(
            self,
            "PikinEchoCiCredentials",
            secret_name=f"pikin-echo/{stage_name}/ci-credentials",
            secret_object_value={
                "accessKeyId": SecretValue.unsafe_plain_text(
                    ci_access_key.access_key_id
                ),
                "secretAccessKey": ci_access_key.secret_access_key,
            },
        )

        CfnOutput(
            self,
            "ApiUrl",
            value=api.url,
        )
        CfnOutput(
            self,
            "FunctionName",
            value=echo_fn.function_name,
        )
        CfnOutput(
            self,
            "BucketName",
            value=echo_bucket.bucket_name,
        )
        CfnOutput(
            self,
            "TableName",
            value=echo_table.table_name,
        )
        CfnOutput(
            self,
            "CiUserName",
            value=ci_user.user_name,
        )
        CfnOutput(
            self,
            "CiCredentialsSecretArn",
            value=ci_credentials.secret_arn,
        )
