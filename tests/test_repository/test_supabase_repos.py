from datetime import datetime, timezone

import httpx
import pytest

from scada_gateway.repository import (
    BaseRepo,
    ConnectionHealthRepo,
    GeneratorLogRepo,
    TagMappingRepo,
    TransformerLogRepo,
)
from scada_gateway.utils.exceptions import PersistenceError, RegistryError

WHEN = datetime(2024, 1, 15, 8, 45, tzinfo=timezone.utc)


def test_base_repo_requires_table_name(supabase):
    with pytest.raises(ValueError):
        BaseRepo(supabase)


def test_find_by_filters_and_orders(supabase, tag_rows):
    supabase.tables["scada_tag_mappings"] = tag_rows
    repo = TagMappingRepo(supabase)

    rows = repo.find_by(is_active=True, order_by="polling_priority", descending=True)

    assert [r["id"] for r in rows] == ["tag-2", "tag-1"]


def test_list_active_wraps_backend_errors(supabase):
    supabase.fail("scada_tag_mappings", "permission denied")

    with pytest.raises(RegistryError) as exc_info:
        TagMappingRepo(supabase).list_active()

    assert "permission denied" in str(exc_info.value)


def test_list_active_wraps_unexpected_client_errors(supabase):
    supabase.failures["scada_tag_mappings"] = KeyError("data")

    with pytest.raises(RegistryError) as exc_info:
        TagMappingRepo(supabase).list_active()

    assert isinstance(exc_info.value.__cause__, KeyError)


def test_transport_errors_become_persistence_errors(supabase):
    repo = ConnectionHealthRepo(supabase)
    supabase.failures["scada_connection_health"] = httpx.ConnectError("connection refused")

    with pytest.raises(PersistenceError):
        repo.merge("modbus_primary", {"is_connected": True}, WHEN)


def test_transformer_rows_are_keyed_by_hour_and_unit(supabase):
    repo = TransformerLogRepo(supabase)

    repo.write_field(1, "oil_temperature", 61.0, WHEN)
    repo.write_field(2, "oil_temperature", 58.0, WHEN)
    repo.write_field(1, "load_percent", 40.0, WHEN)

    rows = supabase.rows("transformer_logs")
    assert len(rows) == 2
    unit1 = next(r for r in rows if r["transformer_number"] == 1)
    assert unit1["oil_temperature"] == 61.0
    assert unit1["load_percent"] == 40.0
    assert unit1["date"] == "2024-01-15"
    assert unit1["hour"] == 8


def test_generator_rows_change_with_the_hour(supabase):
    repo = GeneratorLogRepo(supabase)

    repo.write_field("voltage", 13.8, WHEN)
    repo.write_field("voltage", 13.9, WHEN.replace(hour=9))

    assert [r["hour"] for r in supabase.rows("generator_logs")] == [8, 9]


def test_health_merge_sets_name_and_updated_at(supabase):
    ConnectionHealthRepo(supabase).merge("modbus_primary", {"is_connected": False}, WHEN)

    (row,) = supabase.rows("scada_connection_health")
    assert row["connection_name"] == "modbus_primary"
    assert row["is_connected"] is False
    assert row["updated_at"] == WHEN.isoformat()
