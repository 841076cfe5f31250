import asyncio
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timezone

import pytest

from scada_gateway.models.readings import ConnectionHealth, Reading
from scada_gateway.models.rollups import HourlyRollup
from scada_gateway.models.tags import TagMapping
from scada_gateway.services.data_ingestion_service import DataIngestionService, IngestionRepos

LOCAL_NOW = datetime(2024, 5, 3, 14, 25, 10, tzinfo=timezone.utc)


@pytest.fixture
def sink(supabase):
    executor = ThreadPoolExecutor(max_workers=1)
    service = DataIngestionService(
        IngestionRepos.for_client(supabase),
        executor=executor,
        clock=lambda: LOCAL_NOW,
    )
    yield service
    executor.shutdown(wait=True)


def _reading(tag_id, value, **kwargs):
    ts = datetime(2024, 5, 3, 14, 25, tzinfo=timezone.utc)
    return Reading(
        tag_mapping_id=tag_id,
        raw_value=value,
        scaled_value=value,
        quality_code=0,
        timestamp=ts,
        received_at=ts,
        **kwargs,
    )


def test_reading_upsert_keeps_latest_row_per_tag(supabase, sink):
    async def run():
        assert await sink.upsert_reading(_reading("t1", 10))
        assert await sink.upsert_reading(_reading("t1", 20))

    asyncio.run(run())

    rows = supabase.rows("scada_readings")
    assert len(rows) == 1
    assert rows[0]["scaled_value"] == 20
    assert rows[0]["source"] == "modbus"
    assert supabase.calls[0]["on_conflict"] == "tag_mapping_id"


def test_transformer_log_routing(supabase, sink):
    tag = TagMapping(
        id="t1",
        tag_name="TR2_LOAD",
        modbus_address=1,
        modbus_function_code=3,
        target_table="transformer_logs",
        target_field="load_percent",
        transformer_number=2,
    )

    assert asyncio.run(sink.update_operational_log(tag, 71.5)) is True

    (row,) = supabase.rows("transformer_logs")
    assert row["load_percent"] == 71.5
    assert row["transformer_number"] == 2
    assert row["data_source"] == "scada"
    assert row["date"] == "2024-05-03"
    assert row["hour"] == 14
    assert supabase.calls[-1]["on_conflict"] == "date,hour,transformer_number"


def test_generator_log_merges_fields_in_same_hour(supabase, sink):
    voltage = TagMapping(
        id="g1", tag_name="GEN_V", modbus_address=1, modbus_function_code=3,
        target_table="generator_logs", target_field="voltage",
    )
    frequency = TagMapping(
        id="g2", tag_name="GEN_F", modbus_address=2, modbus_function_code=3,
        target_table="generator_logs", target_field="frequency",
    )

    async def run():
        await sink.update_operational_log(voltage, 13.8)
        await sink.update_operational_log(frequency, 60.0)

    asyncio.run(run())

    (row,) = supabase.rows("generator_logs")
    assert row["voltage"] == 13.8
    assert row["frequency"] == 60.0
    assert supabase.calls[-1]["on_conflict"] == "date,hour"


def test_operational_log_noop_without_target(supabase, sink):
    plain = TagMapping(id="x", tag_name="X", modbus_address=1, modbus_function_code=3)
    missing_field = TagMapping(
        id="y", tag_name="Y", modbus_address=1, modbus_function_code=3,
        target_table="generator_logs",
    )
    unknown_table = TagMapping(
        id="z", tag_name="Z", modbus_address=1, modbus_function_code=3,
        target_table="pump_logs", target_field="flow",
    )

    async def run():
        return [await sink.update_operational_log(t, 1.0) for t in (plain, missing_field, unknown_table)]

    assert asyncio.run(run()) == [False, False, False]
    assert supabase.calls == []


def test_health_update_omits_unset_fields(supabase, sink):
    supabase.tables["scada_connection_health"] = [
        {"connection_name": "modbus_primary", "last_successful_read": "earlier", "error_message": "old"}
    ]
    status = ConnectionHealth(
        is_connected=False,
        last_failed_read=datetime(2024, 5, 3, 14, 0, tzinfo=timezone.utc),
        consecutive_failures=3,
        error_message="timeout",
    )

    assert asyncio.run(sink.update_connection_health("modbus_primary", status)) is True

    payload = supabase.calls[-1]["payload"]
    assert "last_successful_read" not in payload
    assert "host" not in payload
    assert payload["consecutive_failures"] == 3
    assert "updated_at" in payload
    (row,) = supabase.rows("scada_connection_health")
    assert row["last_successful_read"] == "earlier"
    assert row["error_message"] == "timeout"


def test_health_clear_error_writes_null(supabase, sink):
    status = ConnectionHealth(is_connected=True, consecutive_failures=0, clear_error=True)

    asyncio.run(sink.update_connection_health("modbus_primary", status))

    payload = supabase.calls[-1]["payload"]
    assert payload["error_message"] is None
    assert payload["consecutive_failures"] == 0


def test_persistence_failures_are_swallowed(supabase, sink):
    supabase.fail("scada_readings")
    supabase.fail("scada_connection_health")

    async def run():
        return (
            await sink.upsert_reading(_reading("t1", 1)),
            await sink.update_connection_health("modbus_primary", ConnectionHealth(is_connected=True)),
        )

    assert asyncio.run(run()) == (False, False)


def test_save_rollups_batch(supabase, sink):
    computed = datetime(2024, 5, 3, 15, 0, 30, tzinfo=timezone.utc)
    rollups = [
        HourlyRollup("t1", date(2024, 5, 3), 14, 3, 2, 1.0, 3.0, 2.0, 2 / 3, computed),
        HourlyRollup("t2", date(2024, 5, 3), 14, 1, 1, 5.0, 5.0, 5.0, 1.0, computed),
    ]

    async def run():
        assert await sink.save_rollups([]) is True
        assert await sink.save_rollups(rollups) is True

    asyncio.run(run())

    rows = supabase.rows("scada_hourly_rollups")
    assert {r["tag_mapping_id"] for r in rows} == {"t1", "t2"}
    assert supabase.calls[-1]["on_conflict"] == "tag_mapping_id,date,hour"
    assert len(supabase.calls) == 1
