# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Shared fixtures: a fake async DynamoDB client and a frozen clock."""

from __future__ import annotations

import copy
import operator
import re
from decimal import Decimal
from typing import Any

import pytest
from botocore.exceptions import ClientError

from dynacache.cache.adapters.dynamodb import DynamoDbStore
from dynacache.testing import FrozenClock

_FUNCTION_RE = re.compile(r"^(attribute_exists|attribute_not_exists)\((#\w+)\)$")
_COMPARISON_RE = re.compile(r"^(#\w+)\s*(<=|>=|<|>|=)\s*(:\w+)$")
_UPDATE_RE = re.compile(r"^SET (#\w+) = (#\w+) ([+-]) (:\w+)$")

_OPERATORS = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "=": operator.eq,
}


def _client_error(code: str, operation: str, message: str = "") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message or code}}, operation)


def _scalar(attribute: dict[str, str]) -> tuple[str, Any]:
    ((kind, raw),) = attribute.items()
    return kind, Decimal(raw) if kind == "N" else raw


def _canonical_number(raw: str) -> str:
    number = Decimal(raw)
    if number == number.to_integral_value():
        return str(int(number))
    return format(number.normalize(), "f")


def _stored(item: dict[str, Any]) -> dict[str, Any]:
    """Copy an item the way DynamoDB persists it, with numbers normalized."""
    return {
        name: {"N": _canonical_number(attribute["N"])} if "N" in attribute else copy.deepcopy(attribute)
        for name, attribute in item.items()
    }


def _evaluate(
    expression: str,
    item: dict[str, Any] | None,
    names: dict[str, str],
    values: dict[str, dict[str, str]],
) -> bool:
    if " OR " in expression:
        return any(_evaluate(part, item, names, values) for part in expression.split(" OR "))
    if " AND " in expression:
        return all(_evaluate(part, item, names, values) for part in expression.split(" AND "))

    expression = expression.strip()
    match = _FUNCTION_RE.match(expression)
    if match:
        exists = item is not None and names[match.group(2)] in item
        return exists if match.group(1) == "attribute_exists" else not exists

    match = _COMPARISON_RE.match(expression)
    if match is None:
        raise AssertionError(f"Unsupported condition: {expression}")
    left = (item or {}).get(names[match.group(1)])
    if left is None:
        return False
    left_kind, left_value = _scalar(left)
    right_kind, right_value = _scalar(values[match.group(3)])
    if left_kind != right_kind:
        return False
    return _OPERATORS[match.group(2)](left_value, right_value)


class FakeDynamoDb:
    """In-memory stand-in for the aiobotocore DynamoDB client.

    Evaluates the condition and update expressions the store emits, and
    enforces the per-request batch limits of the real service.
    """

    def __init__(self, tables: tuple[str, ...] = ("cache",), key_attribute: str = "key") -> None:
        self.tables: dict[str, dict[str, dict[str, Any]]] = {name: {} for name in tables}
        self.key_attribute = key_attribute
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.unprocessed_keys: set[str] = set()
        self.closed = False

    def _table(self, name: str, operation: str) -> dict[str, dict[str, Any]]:
        if name not in self.tables:
            raise _client_error("ResourceNotFoundException", operation, f"Table {name} not found")
        return self.tables[name]

    @staticmethod
    def _pk(key: dict[str, dict[str, str]]) -> str:
        return next(iter(key.values()))["S"]

    def _check(self, operation: str, item: dict[str, Any] | None, kwargs: dict[str, Any]) -> None:
        condition = kwargs.get("ConditionExpression")
        if condition is None:
            return
        names = kwargs.get("ExpressionAttributeNames", {})
        values = kwargs.get("ExpressionAttributeValues", {})
        if not _evaluate(condition, item, names, values):
            raise _client_error("ConditionalCheckFailedException", operation, "The conditional request failed")

    async def describe_table(self, TableName: str) -> dict[str, Any]:
        self.calls.append(("describe_table", {"TableName": TableName}))
        self._table(TableName, "DescribeTable")
        return {"Table": {"TableName": TableName, "TableStatus": "ACTIVE"}}

    async def get_item(self, TableName: str, Key: dict[str, Any], ConsistentRead: bool = False) -> dict[str, Any]:
        self.calls.append(("get_item", {"TableName": TableName, "Key": Key, "ConsistentRead": ConsistentRead}))
        item = self._table(TableName, "GetItem").get(self._pk(Key))
        return {"Item": copy.deepcopy(item)} if item is not None else {}

    async def batch_get_item(self, RequestItems: dict[str, Any]) -> dict[str, Any]:
        self.calls.append(("batch_get_item", {"RequestItems": RequestItems}))
        responses: dict[str, list[dict[str, Any]]] = {}
        unprocessed: dict[str, Any] = {}
        for table_name, request in RequestItems.items():
            keys = [self._pk(key) for key in request["Keys"]]
            if len(keys) > 100:
                raise _client_error("ValidationException", "BatchGetItem", "Too many items requested")
            if len(set(keys)) != len(keys):
                raise _client_error("ValidationException", "BatchGetItem", "Provided list of item keys contains duplicates")
            table = self._table(table_name, "BatchGetItem")
            skipped = [key for key in request["Keys"] if self._pk(key) in self.unprocessed_keys]
            if skipped:
                unprocessed[table_name] = {"Keys": skipped}
            responses[table_name] = [
                copy.deepcopy(table[key]) for key in keys if key in table and key not in self.unprocessed_keys
            ]
        return {"Responses": responses, "UnprocessedKeys": unprocessed}

    async def put_item(self, TableName: str, Item: dict[str, Any], **kwargs: Any) -> dict[str, Any]:
        self.calls.append(("put_item", {"TableName": TableName, "Item": Item, **kwargs}))
        table = self._table(TableName, "PutItem")
        pk = Item[self.key_attribute]["S"]
        self._check("PutItem", table.get(pk), kwargs)
        table[pk] = _stored(Item)
        return {}

    async def batch_write_item(self, RequestItems: dict[str, Any]) -> dict[str, Any]:
        self.calls.append(("batch_write_item", {"RequestItems": RequestItems}))
        unprocessed: dict[str, list[dict[str, Any]]] = {}
        for table_name, requests in RequestItems.items():
            if len(requests) > 25:
                raise _client_error("ValidationException", "BatchWriteItem", "Too many items requested")
            table = self._table(table_name, "BatchWriteItem")
            for request in requests:
                item = request["PutRequest"]["Item"]
                pk = item[self.key_attribute]["S"]
                if pk in self.unprocessed_keys:
                    unprocessed.setdefault(table_name, []).append(request)
                else:
                    table[pk] = _stored(item)
        return {"UnprocessedItems": unprocessed}

    async def update_item(self, TableName: str, Key: dict[str, Any], UpdateExpression: str, **kwargs: Any) -> dict[str, Any]:
        self.calls.append(("update_item", {"TableName": TableName, "Key": Key, "UpdateExpression": UpdateExpression, **kwargs}))
        table = self._table(TableName, "UpdateItem")
        pk = self._pk(Key)
        item = table.get(pk)
        self._check("UpdateItem", item, kwargs)

        match = _UPDATE_RE.match(UpdateExpression)
        if match is None or item is None:
            raise AssertionError(f"Unsupported update: {UpdateExpression}")
        names = kwargs["ExpressionAttributeNames"]
        target = names[match.group(1)]
        current = item.get(names[match.group(2)], {})
        if "N" not in current:
            raise _client_error("ValidationException", "UpdateItem", "An operand in the update expression has an incorrect data type")
        amount = Decimal(kwargs["ExpressionAttributeValues"][match.group(4)]["N"])
        result = Decimal(current["N"]) + amount if match.group(3) == "+" else Decimal(current["N"]) - amount
        item[target] = {"N": _canonical_number(str(result))}
        return {"Attributes": {target: dict(item[target])}}

    async def delete_item(self, TableName: str, Key: dict[str, Any], **kwargs: Any) -> dict[str, Any]:
        self.calls.append(("delete_item", {"TableName": TableName, "Key": Key, **kwargs}))
        table = self._table(TableName, "DeleteItem")
        pk = self._pk(Key)
        self._check("DeleteItem", table.get(pk), kwargs)
        table.pop(pk, None)
        return {}

    async def close(self) -> None:
        self.closed = True

    def calls_to(self, name: str) -> list[dict[str, Any]]:
        return [kwargs for called, kwargs in self.calls if called == name]


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(1_700_000_000)


@pytest.fixture
def dynamodb() -> FakeDynamoDb:
    return FakeDynamoDb()


@pytest.fixture
def store(dynamodb: FakeDynamoDb, clock: FrozenClock) -> DynamoDbStore:
    return DynamoDbStore(dynamodb, table="cache", clock=clock)


@pytest.fixture
def fake_dynamodb_factory() -> type[FakeDynamoDb]:
    return FakeDynamoDb
