"""DynamoDB belge deposu.

Tüm koleksiyonlar tek tabloda tutulur: HASH = koleksiyon yolu
("warehouses/WH1/bins"), RANGE = belge id. İşlemler transact_write_items ile
commit edilir; her işlem anahtarı için "_locks" koleksiyonunda sürümlü bir
kilit kaydı tutulur, böylece farklı süreçlerden gelen eşzamanlı işlemler
yarışmak yerine çakışma hatası alır.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from functools import reduce
from typing import Any, Optional

import boto3
from boto3.dynamodb.conditions import Attr, Key
from boto3.dynamodb.types import TypeSerializer
from botocore.exceptions import ClientError

from rack_ledger.config import Settings, load_settings
from rack_ledger.errors import TransactionConflict, TransactionTooLarge
from rack_ledger.store.base import DocumentStore, StoreTransaction, WriteOp, apply_query, new_document_id

logger = logging.getLogger(__name__)

LOCK_COLLECTION = "_locks"
# DynamoDB tek işlemde en fazla 100 öğe kabul eder; işlemler bölünmez
MAX_TRANSACTION_ITEMS = 100


def table_definition(table_name: str) -> dict:
    return {
        "TableName": table_name,
        "KeySchema": [
            {"AttributeName": "collection", "KeyType": "HASH"},
            {"AttributeName": "id", "KeyType": "RANGE"},
        ],
        "AttributeDefinitions": [
            {"AttributeName": "collection", "AttributeType": "S"},
            {"AttributeName": "id", "AttributeType": "S"},
        ],
        "BillingMode": "PAY_PER_REQUEST",
    }


def to_dynamo(obj: Any) -> Any:
    """float değerleri Decimal'e çevirir (DynamoDB float kabul etmez)."""
    if isinstance(obj, float):
        return Decimal(str(obj))
    if isinstance(obj, dict):
        return {k: to_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [to_dynamo(i) for i in obj]
    return obj


def from_dynamo(obj: Any) -> Any:
    """Decimal değerleri int/float'a çevirir."""
    if isinstance(obj, Decimal):
        return int(obj) if obj == int(obj) else float(obj)
    if isinstance(obj, dict):
        return {k: from_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [from_dynamo(i) for i in obj]
    return obj


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "")


class DynamoDocumentStore(DocumentStore):
    """boto3 tabanlı DynamoDB deposu - dependency injection destekli."""

    def __init__(
        self,
        table_name: Optional[str] = None,
        region_name: Optional[str] = None,
        dynamodb_resource: Optional[Any] = None,
        dynamodb_client: Optional[Any] = None,
        lock_timeout: Optional[float] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or load_settings()
        super().__init__(lock_timeout=lock_timeout if lock_timeout is not None else settings.lock_timeout)
        self.table_name = table_name or settings.table_name
        self.region_name = region_name or settings.region

        self.dynamodb = dynamodb_resource or boto3.resource("dynamodb", region_name=self.region_name)
        self.client = dynamodb_client or boto3.client("dynamodb", region_name=self.region_name)
        self.table = self.dynamodb.Table(self.table_name)
        self._serializer = TypeSerializer()

        logger.info("DynamoDB deposu hazır: %s (%s)", self.table_name, self.region_name)

    # --- Tablo kurulumu ---

    def create_table(self) -> bool:
        """Tablo yoksa oluşturur. Oluşturulduysa True döner."""
        try:
            self.client.describe_table(TableName=self.table_name)
            logger.info("Tablo zaten mevcut, atlanıyor: %s", self.table_name)
            return False
        except ClientError as e:
            if _error_code(e) != "ResourceNotFoundException":
                raise

        logger.info("Tablo oluşturuluyor: %s", self.table_name)
        self.client.create_table(**table_definition(self.table_name))
        waiter = self.client.get_waiter("table_exists")
        waiter.wait(TableName=self.table_name)
        return True

    # --- Temel CRUD ---

    def _key(self, collection: str, doc_id: str) -> dict:
        return {"collection": collection, "id": doc_id}

    def _from_item(self, item: dict) -> dict:
        doc = from_dynamo(dict(item))
        doc.pop("collection", None)
        return doc

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        resp = self.table.get_item(Key=self._key(collection, doc_id), ConsistentRead=True)
        if "Item" not in resp:
            return None
        return self._from_item(resp["Item"])

    def list(self, collection: str, filter: Optional[dict] = None, order_by: Optional[str] = None) -> list[dict]:
        kwargs: dict[str, Any] = {
            "KeyConditionExpression": Key("collection").eq(collection),
            "ConsistentRead": True,
        }
        if filter:
            conditions = [Attr(name).eq(to_dynamo(value)) for name, value in filter.items()]
            kwargs["FilterExpression"] = reduce(lambda a, b: a & b, conditions)

        items: list[dict] = []
        while True:
            resp = self.table.query(**kwargs)
            items.extend(resp.get("Items", []))
            last_key = resp.get("LastEvaluatedKey")
            if not last_key:
                break
            kwargs["ExclusiveStartKey"] = last_key

        return apply_query([self._from_item(i) for i in items], order_by=order_by)

    def create(self, collection: str, doc: dict) -> dict:
        doc_id = doc.get("id") or new_document_id()
        stored = {**doc, "id": doc_id}
        try:
            self.table.put_item(
                Item=to_dynamo({**stored, "collection": collection}),
                ConditionExpression="attribute_not_exists(#id)",
                ExpressionAttributeNames={"#id": "id"},
            )
        except ClientError as e:
            if _error_code(e) == "ConditionalCheckFailedException":
                raise TransactionConflict(f"Belge zaten mevcut: {collection}/{doc_id}") from e
            raise
        return stored

    def _update_expression(self, patch: dict) -> tuple[str, dict, dict]:
        names: dict[str, str] = {}
        values: dict[str, Any] = {}
        parts = []
        for i, (name, value) in enumerate(patch.items()):
            names[f"#f{i}"] = name
            values[f":v{i}"] = to_dynamo(value)
            parts.append(f"#f{i} = :v{i}")
        return "SET " + ", ".join(parts), names, values

    def update(self, collection: str, doc_id: str, patch: dict) -> None:
        if not patch:
            return
        expression, names, values = self._update_expression(patch)
        try:
            self.table.update_item(
                Key=self._key(collection, doc_id),
                UpdateExpression=expression,
                ConditionExpression="attribute_exists(#id)",
                ExpressionAttributeNames={**names, "#id": "id"},
                ExpressionAttributeValues=values,
            )
        except ClientError as e:
            if _error_code(e) == "ConditionalCheckFailedException":
                raise KeyError(f"Belge bulunamadı: {collection}/{doc_id}") from e
            raise

    def delete(self, collection: str, doc_id: str) -> None:
        self.table.delete_item(Key=self._key(collection, doc_id))

    # --- İşlemler ---

    def _begin(self, tx: StoreTransaction) -> None:
        versions = {}
        for key in tx.keys:
            lock_item = self.get(LOCK_COLLECTION, key)
            versions[key] = int(lock_item.get("version", 0)) if lock_item else 0
        tx.context["versions"] = versions

    def _serialize(self, item: dict) -> dict:
        return {k: self._serializer.serialize(v) for k, v in to_dynamo(item).items()}

    def _lock_guard(self, key: str, expected: int) -> dict:
        condition = "attribute_not_exists(#version)" if expected == 0 else "#version = :expected"
        values = {":next": {"N": str(expected + 1)}}
        if expected:
            values[":expected"] = {"N": str(expected)}
        return {
            "Update": {
                "TableName": self.table_name,
                "Key": self._serialize(self._key(LOCK_COLLECTION, key)),
                "UpdateExpression": "SET #version = :next",
                "ConditionExpression": condition,
                "ExpressionAttributeNames": {"#version": "version"},
                "ExpressionAttributeValues": values,
            }
        }

    def _transact_item(self, op: WriteOp) -> Optional[dict]:
        key = self._serialize(self._key(op.collection, op.doc_id))
        if op.action == "create":
            return {
                "Put": {
                    "TableName": self.table_name,
                    "Item": self._serialize({**op.payload, "collection": op.collection}),
                    "ConditionExpression": "attribute_not_exists(#id)",
                    "ExpressionAttributeNames": {"#id": "id"},
                }
            }
        if op.action == "update":
            if not op.payload:
                return None
            expression, names, values = self._update_expression(op.payload)
            return {
                "Update": {
                    "TableName": self.table_name,
                    "Key": key,
                    "UpdateExpression": expression,
                    "ConditionExpression": "attribute_exists(#id)",
                    "ExpressionAttributeNames": {**names, "#id": "id"},
                    "ExpressionAttributeValues": {k: self._serializer.serialize(v) for k, v in values.items()},
                }
            }
        if op.action == "delete":
            return {"Delete": {"TableName": self.table_name, "Key": key}}
        raise ValueError(f"Bilinmeyen yazma tipi: {op.action}")

    def _commit(self, tx: StoreTransaction) -> None:
        versions = tx.context.get("versions", {})
        guards = [self._lock_guard(key, versions.get(key, 0)) for key in tx.keys]
        writes = [item for item in (self._transact_item(op) for op in tx.writes) if item]

        transact_items = guards + writes
        if len(transact_items) > MAX_TRANSACTION_ITEMS:
            raise TransactionTooLarge(len(transact_items), MAX_TRANSACTION_ITEMS, keys=tx.keys)

        try:
            self.client.transact_write_items(TransactItems=transact_items)
        except ClientError as e:
            if _error_code(e) in ("TransactionCanceledException", "ConditionalCheckFailedException"):
                raise TransactionConflict(
                    f"İşlem iptal edildi - eşzamanlı değişiklik ya da koşul sağlanmadı: {e}",
                    keys=tx.keys,
                ) from e
            raise
