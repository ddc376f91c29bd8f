"""Create TaskReport DynamoDB tables and seed the default task schema.

Usage:
    python scripts/seed_dynamodb.py --endpoint-url http://localhost:4566
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any

import boto3

TABLE_DEFINITIONS: list[dict[str, Any]] = [
    {"name": "taskreport-settings"},
    {
        "name": "taskreport-reports",
        "indexes": [{"name": "UserDayIndex", "hash_key": "user_day"}],
    },
    {"name": "taskreport-audit-log"},
]

SEED_PATH = Path(__file__).resolve().parent.parent / "config" / "schema_seed.json"


def create_tables(ddb: Any, suffix: str = "") -> None:
    """Create all 3 DynamoDB tables. Skips if table already exists."""
    client = ddb.meta.client
    existing = client.list_tables().get("TableNames", [])

    for defn in TABLE_DEFINITIONS:
        table_name = f"{defn['name']}{suffix}"
        if table_name in existing:
            print(f"  Table {table_name} already exists, skipping")
            continue

        attributes = [
            {"AttributeName": "PK", "AttributeType": "S"},
            {"AttributeName": "SK", "AttributeType": "S"},
        ]
        kwargs: dict[str, Any] = {}
        indexes = defn.get("indexes", [])
        if indexes:
            kwargs["GlobalSecondaryIndexes"] = [
                {
                    "IndexName": idx["name"],
                    "KeySchema": [{"AttributeName": idx["hash_key"], "KeyType": "HASH"}],
                    "Projection": {"ProjectionType": "ALL"},
                }
                for idx in indexes
            ]
            attributes += [
                {"AttributeName": idx["hash_key"], "AttributeType": "S"} for idx in indexes
            ]

        client.create_table(
            TableName=table_name,
            KeySchema=[
                {"AttributeName": "PK", "KeyType": "HASH"},
                {"AttributeName": "SK", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=attributes,
            BillingMode="PAY_PER_REQUEST",
            **kwargs,
        )
        print(f"  Created table {table_name}")


def seed_schema(ddb: Any, suffix: str = "", seed_path: Path = SEED_PATH) -> None:
    """Load schema_seed.json into the settings table."""
    data = json.loads(seed_path.read_text(encoding="utf-8"))
    tbl = ddb.Table(f"taskreport-settings{suffix}")

    with tbl.batch_writer() as batch:
        for field in data["fields"]:
            batch.put_item(Item={"PK": "FIELD", "SK": f"FIELD#{field['key']}", **field})
    print(f"  Seeded {len(data['fields'])} task fields")

    with tbl.batch_writer() as batch:
        for status in data["statuses"]:
            batch.put_item(Item={"PK": "STATUS", "SK": f"STATUS#{status['slug']}", **status})
    print(f"  Seeded {len(data['statuses'])} statuses")


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed DynamoDB tables for TaskReport")
    parser.add_argument("--endpoint-url", default=None, help="DynamoDB endpoint (e.g. http://localhost:4566)")
    parser.add_argument("--table-suffix", default="", help="Table name suffix (e.g. -dev)")
    parser.add_argument("--region", default="us-east-1", help="AWS region")
    args = parser.parse_args()

    kwargs: dict[str, Any] = {"region_name": args.region}
    if args.endpoint_url:
        kwargs["endpoint_url"] = args.endpoint_url

    ddb = boto3.resource("dynamodb", **kwargs)

    print("Creating tables...")
    create_tables(ddb, suffix=args.table_suffix)

    print("Seeding schema...")
    seed_schema(ddb, suffix=args.table_suffix)

    print("Done!")


if __name__ == "__main__":
    main()
