"""
tests/test_payload_normalization.py — Event Payload Normalization
==================================================================
"""

from __future__ import annotations

from datetime import datetime

import pytest

from questline.engine.events import normalize_payload
from questline.services.exceptions import InvalidPayloadError


class TestShapes:
    def test_native_payload(self):
        p = normalize_payload({
            "event": "order_create",
            "player_id": 42,
            "game_id": 3,
            "timestamp": "2026-05-01T10:00:00+00:00",
            "properties": {"total": 99},
        })
        assert p.event == "order_create"
        assert p.player_id == 42
        assert p.game_id == 3
        assert isinstance(p.timestamp, datetime)
        assert p.properties == {"total": 99}

    def test_store_id_alias(self):
        assert normalize_payload({"event": "x", "store_id": "17"}).player_id == 17
        assert normalize_payload({"event": "x", "storeId": 18}).player_id == 18

    def test_segment_shape(self):
        p = normalize_payload({
            "event": {"name": "product_create", "properties": {"sku": "A1"}},
            "merchant": {"id": "55"},
        })
        assert p.event == "product_create"
        assert p.player_id == 55
        assert p.properties == {"sku": "A1"}

    def test_jitsu_shape(self):
        p = normalize_payload({
            "type": "app_install",
            "merchant": {"id": 9},
            "event_data": {"app": "shipping"},
        })
        assert p.event == "app_install"
        assert p.properties == {"app": "shipping"}

    def test_raw_payload_kept(self):
        raw = {"event": "x", "player_id": 1, "extra": True}
        assert normalize_payload(raw).raw == raw


class TestRejections:
    @pytest.mark.parametrize("raw", [{}, None, []])
    def test_empty_payload(self, raw):
        with pytest.raises(InvalidPayloadError, match="No payload provided"):
            normalize_payload(raw)

    def test_missing_event_name(self):
        with pytest.raises(InvalidPayloadError, match="event name"):
            normalize_payload({"player_id": 1})

    def test_missing_actor(self):
        with pytest.raises(InvalidPayloadError):
            normalize_payload({"event": "order_create"})

    @pytest.mark.parametrize("bad", [0, -4, True, "abc", 1.5])
    def test_bad_player_id(self, bad):
        with pytest.raises(InvalidPayloadError):
            normalize_payload({"event": "order_create", "player_id": bad})

    def test_bad_timestamp(self):
        with pytest.raises(InvalidPayloadError, match="timestamp"):
            normalize_payload({"event": "x", "player_id": 1, "timestamp": "yesterday"})

    def test_properties_must_be_object(self):
        with pytest.raises(InvalidPayloadError):
            normalize_payload({"event": "x", "player_id": 1, "properties": [1, 2]})
