"""
Main CDK Stack for the CRM relationship-automation engine.
"""

from aws_cdk import (
    Stack,
    Tags,
    CfnOutput,
)
from constructs import Construct

from infrastructure.constructs.data_layer import DataLayerConstruct
from infrastructure.constructs.api_layer import ApiLayerConstruct, bundled_source
from infrastructure.constructs.event_pipeline import ScoringScheduleConstruct
from infrastructure.config.settings import Settings


class CrmAutomationStack(Stack):
    """Main stack wiring all constructs together."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        settings: Settings,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        # Global tags for cost/accounting.
        Tags.of(self).add("Project", "crm-automation")
        Tags.of(self).add("Environment", settings.environment)
        Tags.of(self).add("CostCenter", "relationship-automation")
        Tags.of(self).add("ManagedBy", "cdk")

        # 1) Data layer (VPC, Postgres, DynamoDB, SQS).
        data_construct = DataLayerConstruct(
            self,
            "DataLayer",
            environment=settings.environment,
            db_instance_class=settings.db_instance_class,
            db_allocated_storage=settings.db_allocated_storage,
        )

        lambda_environment = {
            **settings.lambda_environment(),
            "DB_SECRET_ARN": data_construct.db_secret.secret_arn,
            "INTERACTIONS_TABLE": data_construct.interactions_table.table_name,
            "NOTIFICATIONS_QUEUE_URL": data_construct.notifications_queue.queue_url,
        }
        code = bundled_source()

        # 2) API layer (single Lambda).
        api_construct = ApiLayerConstruct(
            self,
            "ApiLayer",
            environment=settings.environment,
            vpc=data_construct.vpc,
            code=code,
            lambda_environment=lambda_environment,
            lambda_memory_mb=settings.lambda_memory_mb,
            lambda_timeout_seconds=settings.lambda_timeout_seconds,
        )

        # 3) Nightly compute_all.
        schedule_construct = ScoringScheduleConstruct(
            self,
            "ScoringSchedule",
            vpc=data_construct.vpc,
            code=code,
            lambda_environment=lambda_environment,
            timeout_seconds=settings.scoring_timeout_seconds,
            hour=settings.scoring_schedule_hour,
            minute=settings.scoring_schedule_minute,
        )

        # Permissions.
        for fn in (api_construct.main_lambda, schedule_construct.scoring_lambda):
            data_construct.db_secret.grant_read(fn)
            data_construct.interactions_table.grant_read_write_data(fn)
            data_construct.notifications_queue.grant_send_messages(fn)

        # Outputs to quickly find resources.
        CfnOutput(self, "ApiEndpoint", value=api_construct.api.api_endpoint)
        CfnOutput(self, "DbSecretArn", value=data_construct.db_secret.secret_arn)
        CfnOutput(self, "InteractionsTable", value=data_construct.interactions_table.table_name)
        CfnOutput(self, "NotificationsQueueUrl", value=data_construct.notifications_queue.queue_url)
