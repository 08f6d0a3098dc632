from __future__ import annotations

import logging
import os
import uuid

import boto3

from wiredb_py import Attribute, AttributeComparison, KeyAttribute, PrimaryKey, Table, server_from_environment


def _session() -> boto3.session.Session:
    return boto3.session.Session(
        region_name=os.environ.get("AWS_REGION", "us-east-1"),
        aws_access_key_id=os.environ.get("AWS_ACCESS_KEY_ID", "dummy"),
        aws_secret_access_key=os.environ.get("AWS_SECRET_ACCESS_KEY", "dummy"),
    )


def main() -> None:
    logging.basicConfig(level=logging.INFO)

    endpoint = os.environ.get("DYNAMODB_ENDPOINT", "http://localhost:8000")
    session = _session()
    client = session.client("dynamodb", endpoint_url=endpoint)
    table_name = f"wiredb_py_example_{uuid.uuid4().hex[:12]}"

    client.create_table(
        TableName=table_name,
        KeySchema=[{"AttributeName": "pk", "KeyType": "HASH"}, {"AttributeName": "sk", "KeyType": "RANGE"}],
        AttributeDefinitions=[
            {"AttributeName": "pk", "AttributeType": "S"},
            {"AttributeName": "sk", "AttributeType": "S"},
        ],
        BillingMode="PAY_PER_REQUEST",
    )
    client.get_waiter("table_exists").wait(TableName=table_name)

    try:
        server = server_from_environment(session=session, endpoint_url=endpoint)
        table = Table(server=server, name=table_name, key=PrimaryKey(hash=KeyAttribute("pk"), range=KeyAttribute("sk")))

        table.put_item("A", "001", [Attribute.number("value", 1)])
        table.put_item("A", "010", [Attribute.number("value", 10), Attribute.string_set("tags", ["x", "y"])])
        table.put_item("A", "100", [Attribute.number("value", 100)])

        print("get:", table.get_item(table.key.clone("A", "010")))

        items = table.query(
            [table.key.hash_condition("A"), AttributeComparison.begins_with(Attribute.string("sk", "0"))],
            is_retry=True,
        )
        print("query begins_with('0'):", items)

        table.add_attributes(table.key.clone("A", "001"), [Attribute.number("value", 5)])
        print("count:", table.count_query([table.key.hash_condition("A")]))
    finally:
        client.delete_table(TableName=table_name)


if __name__ == "__main__":
    main()
