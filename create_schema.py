#!/usr/bin/env python3
"""Create the CRM tables on the stack's PostgreSQL instance (or DATABASE_URL)."""

import os
import sys

import boto3

sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), "src"))

from repositories.schema import metadata  # noqa: E402
from services.store import get_db_engine  # noqa: E402


def _secret_arn_from_stack(stack_name: str, region: str) -> str:
    cf = boto3.client("cloudformation", region_name=region)
    resp = cf.describe_stacks(StackName=stack_name)
    outputs = {o["OutputKey"]: o["OutputValue"] for o in resp["Stacks"][0]["Outputs"]}
    return outputs["DbSecretArn"]


def main():
    environment = os.environ.get("ENVIRONMENT", "dev")
    region = os.environ.get("AWS_REGION", "eu-west-2")

    if not os.environ.get("DATABASE_URL") and not os.environ.get("DB_SECRET_ARN"):
        try:
            os.environ["DB_SECRET_ARN"] = _secret_arn_from_stack(
                f"CrmAutomationStack-{environment}", region
            )
        except Exception as e:
            print(f"Error getting DB secret from stack outputs: {e}")
            sys.exit(1)

    engine = get_db_engine()
    print(f"Creating tables on {engine.url.render_as_string(hide_password=True)}")
    metadata.create_all(engine)
    for table in metadata.sorted_tables:
        print(f"  {table.name}")
    print("Schema ready.")


if __name__ == "__main__":
    main()
