import asyncio

import pytest

from scada_gateway.models.tags import GeneratorLogTarget, TransformerLogTarget
from scada_gateway.repository.Tags_repository import TagMappingRepo
from scada_gateway.services.tag_registry_service import TagRegistry
from scada_gateway.utils.exceptions import RegistryError


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def _select_count(client):
    return sum(1 for c in client.calls if c["op"] == "select")


def test_load_keeps_active_tags_in_priority_order(supabase, tag_rows):
    supabase.tables["scada_tag_mappings"] = tag_rows
    registry = TagRegistry(TagMappingRepo(supabase))

    count = asyncio.run(registry.load_tag_mappings())

    assert count == 2
    assert [t.id for t in registry.active_tags] == ["tag-1", "tag-2"]
    gen, transformer = registry.active_tags
    assert isinstance(gen.log_target, GeneratorLogTarget)
    assert transformer.log_target == TransformerLogTarget(number=1)
    assert transformer.scaling_factor == pytest.approx(0.1)
    assert transformer.offset == -10


def test_reload_only_after_interval(supabase, tag_rows):
    supabase.tables["scada_tag_mappings"] = tag_rows
    clock = FakeClock()
    registry = TagRegistry(TagMappingRepo(supabase), reload_interval=300, clock=clock)

    async def run():
        assert await registry.reload_if_needed() is True
        clock.now += 120
        assert await registry.reload_if_needed() is False
        clock.now += 179
        assert await registry.reload_if_needed() is False
        clock.now += 1
        assert await registry.reload_if_needed() is True

    asyncio.run(run())

    assert _select_count(supabase) == 2


def test_failed_load_keeps_previous_snapshot(supabase, tag_rows):
    supabase.tables["scada_tag_mappings"] = tag_rows
    clock = FakeClock()
    registry = TagRegistry(TagMappingRepo(supabase), reload_interval=300, clock=clock)

    async def run():
        await registry.load_tag_mappings()
        before = registry.active_tags
        supabase.fail("scada_tag_mappings")
        with pytest.raises(RegistryError):
            await registry.load_tag_mappings()
        assert registry.active_tags is before

        clock.now += 301
        # recarga periódica falhada não propaga
        assert await registry.reload_if_needed() is True
        assert registry.active_tags is before

    asyncio.run(run())


def test_snapshot_is_replaced_not_mutated(supabase, tag_rows):
    supabase.tables["scada_tag_mappings"] = tag_rows
    registry = TagRegistry(TagMappingRepo(supabase))

    async def run():
        await registry.load_tag_mappings()
        captured = registry.active_tags
        supabase.tables["scada_tag_mappings"] = [tag_rows[1]]
        await registry.load_tag_mappings()
        return captured

    captured = asyncio.run(run())

    assert len(captured) == 2
    assert registry.active_tag_count == 1


def test_invalid_rows_are_skipped(supabase):
    supabase.tables["scada_tag_mappings"] = [
        {"id": "ok", "modbus_address": 1, "is_active": True},
        {"id": "broken", "modbus_address": None, "is_active": True},
        {"id": "junk", "modbus_address": "abc", "is_active": True},
    ]
    registry = TagRegistry(TagMappingRepo(supabase))

    asyncio.run(registry.load_tag_mappings())

    (tag,) = registry.active_tags
    assert tag.id == "ok"
    assert tag.modbus_function_code == 3
    assert tag.data_type == "uint16"
    assert tag.scaling_factor == 1.0
    assert tag.offset == 0.0


def test_unexpected_client_error_on_reload_keeps_previous_snapshot(supabase, tag_rows):
    supabase.tables["scada_tag_mappings"] = tag_rows
    clock = FakeClock()
    registry = TagRegistry(TagMappingRepo(supabase), reload_interval=300, clock=clock)

    async def run():
        await registry.load_tag_mappings()
        before = registry.active_tags
        supabase.failures["scada_tag_mappings"] = ValueError("malformed response")
        clock.now += 300
        assert await registry.reload_if_needed() is True
        return before

    before = asyncio.run(run())

    assert registry.active_tags is before
