"""Tests for notification parsing."""

import json

import pytest

from image_variants.core.events import extract_records, locator_from_s3_entry
from image_variants.core.exceptions import EventParseError
from image_variants.core.models import StorageLocator
from image_variants.testing.fakes import make_s3_record, make_sns_event


def _locators(records):
    return [r.locator for r in records]


class TestSnsEnvelope:
    def test_single_message_single_entry(self):
        event = make_sns_event([("uploads", "photos/img.png")])

        records = extract_records(event)

        assert _locators(records) == [StorageLocator(bucket="uploads", key="photos/img.png")]
        assert records[0].origin == "Records[0].Records[0]"

    def test_message_with_several_entries_and_several_messages(self):
        event = make_sns_event(
            [("uploads", "a.png"), ("uploads", "b.png")],
            [("other", "c.jpg")],
        )

        assert [(l.bucket, l.key) for l in _locators(extract_records(event))] == [
            ("uploads", "a.png"),
            ("uploads", "b.png"),
            ("other", "c.jpg"),
        ]

    def test_keys_are_url_decoded(self):
        event = make_sns_event([("uploads", "holiday pics/été 1.jpg")])

        assert extract_records(event)[0].locator.key == "holiday pics/été 1.jpg"

    def test_test_event_without_records_yields_nothing(self):
        event = {"Records": [{"Sns": {"Message": json.dumps({"Event": "s3:TestEvent"})}}]}

        assert extract_records(event) == []

    def test_malformed_message_does_not_hide_siblings(self):
        event = make_sns_event([("uploads", "good.png")])
        event["Records"].insert(0, {"Sns": {"Message": "{not json"}})

        records = extract_records(event)

        assert len(records) == 2
        assert records[0].locator is None
        assert "not valid JSON" in records[0].error
        assert records[1].locator.key == "good.png"

    def test_entry_without_key_is_reported(self):
        message = {"Records": [{"s3": {"bucket": {"name": "uploads"}, "object": {}}}]}
        event = {"Records": [{"Sns": {"Message": json.dumps(message)}}]}

        records = extract_records(event)

        assert records[0].locator is None
        assert "key" in records[0].error


class TestOtherShapes:
    def test_direct_s3_event(self):
        event = {"Records": [make_s3_record("uploads", "x/y.png")]}

        assert _locators(extract_records(event)) == [StorageLocator(bucket="uploads", key="x/y.png")]

    def test_sqs_wrapping_sns(self):
        sns_body = {"Type": "Notification", "Message": json.dumps({"Records": [make_s3_record("b", "k.png")]})}
        event = {"Records": [{"eventSource": "aws:sqs", "body": json.dumps(sns_body)}]}

        assert _locators(extract_records(event)) == [StorageLocator(bucket="b", key="k.png")]

    def test_sqs_with_raw_s3_event(self):
        event = {"Records": [{"body": json.dumps({"Records": [make_s3_record("b", "k.png")]})}]}

        assert extract_records(event)[0].locator.key == "k.png"

    def test_unknown_item_is_reported(self):
        records = extract_records({"Records": [{"something": "else"}]})

        assert records[0].locator is None
        assert "Unrecognized" in records[0].error

    def test_empty_batch(self):
        assert extract_records({}) == []

    def test_records_not_a_list(self):
        with pytest.raises(EventParseError):
            extract_records({"Records": "nope"})


def test_locator_from_s3_entry_plus_is_space():
    entry = {"s3": {"bucket": {"name": "b"}, "object": {"key": "my+photo.png"}}}
    assert locator_from_s3_entry(entry).key == "my photo.png"
