"""
Environment-specific deployment settings.

Cost-optimized defaults for development/testing.
"""

from dataclasses import dataclass
import os


@dataclass
class Settings:
    """Deployment settings with cost-optimized defaults."""

    # Environment
    environment: str = "dev"
    aws_region: str = "eu-west-2"  # Default AWS region

    # Database Configuration (Cost-optimized)
    db_instance_class: str = "t3.micro"  # Free tier eligible
    db_allocated_storage: int = 20  # Minimum GB

    # Lambda Configuration
    lambda_memory_mb: int = 512
    lambda_timeout_seconds: int = 30
    scoring_timeout_seconds: int = 300

    # Nightly compute_all run (UTC cron fields)
    scoring_schedule_hour: str = "2"
    scoring_schedule_minute: str = "0"

    # Interaction log backend passed to the Lambdas: sql | dynamodb
    interactions_backend: str = "sql"

    # Engine knobs passed through as Lambda environment
    trigger_cache_ttl_seconds: int = 0
    contact_cache_ttl_seconds: int = 30
    auto_process_ingested: bool = False

    @classmethod
    def from_environment(cls) -> "Settings":
        """Load settings from environment variables."""
        env = os.environ.get("ENVIRONMENT", "dev")
        backend = os.environ.get("INTERACTIONS_BACKEND", "sql").lower()
        auto_process = os.environ.get("AUTO_PROCESS_INGESTED", "false").lower() == "true"
        region = os.environ.get("AWS_REGION", "eu-west-2")

        # Production overrides
        if env == "prod":
            return cls(
                environment="prod",
                aws_region=region,
                db_instance_class="t3.small",  # Upgrade for prod
                db_allocated_storage=50,
                lambda_memory_mb=1024,
                lambda_timeout_seconds=60,
                scoring_timeout_seconds=900,
                interactions_backend=backend,
                auto_process_ingested=auto_process,
            )

        return cls(
            environment=env,
            aws_region=region,
            interactions_backend=backend,
            auto_process_ingested=auto_process,
        )

    def lambda_environment(self) -> dict:
        """Engine settings shared by every Lambda of the stack."""
        return {
            "ENVIRONMENT": self.environment,
            "INTERACTIONS_BACKEND": self.interactions_backend,
            "TRIGGER_CACHE_TTL_SECONDS": str(self.trigger_cache_ttl_seconds),
            "CONTACT_CACHE_TTL_SECONDS": str(self.contact_cache_ttl_seconds),
            "AUTO_PROCESS_INGESTED": str(self.auto_process_ingested).lower(),
        }
