"""
Event pipeline: EventBridge schedule -> Lambda for the nightly score run.
"""

from typing import Dict

from aws_cdk import (
    Duration,
    aws_ec2 as ec2,
    aws_events as events,
    aws_events_targets as targets,
    aws_lambda as _lambda,
    aws_logs as logs,
)
from constructs import Construct


class ScoringScheduleConstruct(Construct):
    """Recompute every contact's scores (and score_change triggers) on a cron."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        vpc: ec2.IVpc,
        code: _lambda.Code,
        lambda_environment: Dict[str, str],
        timeout_seconds: int = 300,
        hour: str = "2",
        minute: str = "0",
    ) -> None:
        super().__init__(scope, construct_id)

        self.scoring_lambda = _lambda.Function(
            self,
            "ScheduledScoring",
            runtime=_lambda.Runtime.PYTHON_3_12,
            handler="handlers.compute_scores.scheduled_handler",
            code=code,
            timeout=Duration.seconds(timeout_seconds),
            memory_size=512,
            architecture=_lambda.Architecture.X86_64,
            vpc=vpc,
            environment=lambda_environment,
            log_retention=logs.RetentionDays.ONE_WEEK,
        )

        events.Rule(
            self,
            "NightlyScoringRule",
            schedule=events.Schedule.cron(minute=minute, hour=hour),
            targets=[targets.LambdaFunction(self.scoring_lambda)],
        )
