"""Extraction of storage locators from inbound notification batches."""

import json
from typing import Any, Dict, Iterator, List, Mapping
from urllib.parse import unquote_plus

from pydantic import ValidationError

from .exceptions import EventParseError
from .models import ParsedRecord, StorageLocator


def locator_from_s3_entry(entry: Mapping[str, Any]) -> StorageLocator:
    """
    Build a StorageLocator from one S3 event record.

    Object keys in S3 notifications are url-encoded ("+" for spaces), so they
    are decoded before use.

    Raises:
        EventParseError: If bucket name or object key is missing
    """
    try:
        s3 = entry["s3"]
        bucket = s3["bucket"]["name"]
        key = unquote_plus(s3["object"]["key"])
    except (KeyError, TypeError) as exc:
        raise EventParseError(f"S3 record without bucket/key: missing {exc}") from exc

    try:
        return StorageLocator(bucket=bucket, key=key)
    except ValidationError as exc:
        raise EventParseError(f"Invalid S3 record: {exc}") from exc


def _load_json(payload: Any, what: str) -> Dict[str, Any]:
    if isinstance(payload, Mapping):
        return dict(payload)
    try:
        loaded = json.loads(payload)
    except (TypeError, ValueError) as exc:
        raise EventParseError(f"{what} is not valid JSON: {exc}") from exc
    if not isinstance(loaded, dict):
        raise EventParseError(f"{what} is not a JSON object")
    return loaded


def _s3_event_from_item(item: Mapping[str, Any]) -> Dict[str, Any]:
    """Unwrap an SNS or SQS notification item down to its S3 event payload."""
    if "Sns" in item:
        return _load_json(item["Sns"].get("Message"), "SNS message")
    if "body" in item:
        body = _load_json(item["body"], "SQS body")
        # SNS fan-out to SQS nests the S3 event one level deeper
        if "Message" in body and "Records" not in body:
            return _load_json(body["Message"], "SNS message in SQS body")
        return body
    if "s3" in item:
        return {"Records": [item]}
    raise EventParseError("Unrecognized notification item (expected Sns, body or s3)")


def _iter_items(event: Mapping[str, Any]) -> Iterator[Mapping[str, Any]]:
    records = event.get("Records", [])
    if not isinstance(records, list):
        raise EventParseError("Notification 'Records' is not a list")
    return iter(records)


def extract_records(event: Mapping[str, Any]) -> List[ParsedRecord]:
    """
    Flatten a notification batch into one ParsedRecord per storage-change entry.

    A notification item that cannot be parsed yields a single ParsedRecord
    carrying the error; the remaining items are still extracted. Payloads
    without a ``Records`` list (such as ``s3:TestEvent``) yield nothing.

    Args:
        event: Inbound batch, e.g. an SNS event with S3 notifications in its messages

    Returns:
        Parsed records in notification order
    """
    parsed: List[ParsedRecord] = []

    for index, item in enumerate(_iter_items(event)):
        origin = f"Records[{index}]"
        try:
            s3_event = _s3_event_from_item(item)
        except (EventParseError, AttributeError, TypeError) as exc:
            parsed.append(ParsedRecord(error=str(exc), origin=origin))
            continue

        for entry_index, entry in enumerate(s3_event.get("Records") or []):
            entry_origin = f"{origin}.Records[{entry_index}]"
            try:
                locator = locator_from_s3_entry(entry)
            except EventParseError as exc:
                parsed.append(ParsedRecord(error=str(exc), origin=entry_origin))
                continue
            parsed.append(ParsedRecord(locator=locator, origin=entry_origin))

    return parsed
