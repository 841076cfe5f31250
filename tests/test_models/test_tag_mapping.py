from datetime import datetime, timezone

import pytest

from scada_gateway.models import (
    ConnectionHealth,
    GeneratorLogTarget,
    NoLogTarget,
    Reading,
    TagMapping,
    TransformerLogTarget,
)
from scada_gateway.models.tags import resolve_log_target


def test_from_row_applies_defaults():
    tag = TagMapping.from_row({"id": 7, "modbus_address": "40", "scaling_factor": None, "offset": None})

    assert tag.tag_name == "7"
    assert tag.modbus_address == 40
    assert tag.modbus_function_code == 3
    assert tag.scaling_factor == 1.0
    assert tag.offset == 0.0
    assert isinstance(tag.log_target, NoLogTarget)


def test_from_row_requires_address():
    with pytest.raises(ValueError):
        TagMapping.from_row({"id": 1})


@pytest.mark.parametrize(
    "table, number, expected",
    [
        ("transformer_logs", 3, TransformerLogTarget(number=3)),
        ("Generator_Logs", None, GeneratorLogTarget()),
        ("pump_logs", None, NoLogTarget()),
        (None, None, NoLogTarget()),
    ],
)
def test_log_target_resolution(table, number, expected):
    assert resolve_log_target(table, number) == expected


def test_bad_reading_row():
    ts = datetime(2024, 1, 1, tzinfo=timezone.utc)

    row = Reading.bad("t1", now=ts).to_row()

    assert row["raw_value"] == 0
    assert row["scaled_value"] == 0
    assert row["quality_code"] == 1
    assert row["is_alarm"] is False
    assert row["timestamp"] == ts.isoformat()


def test_connection_health_serialises_datetimes():
    ts = datetime(2024, 1, 1, 12, tzinfo=timezone.utc)

    fields = ConnectionHealth(last_successful_read=ts, port=502).to_fields()

    assert fields == {"port": 502, "last_successful_read": ts.isoformat()}
