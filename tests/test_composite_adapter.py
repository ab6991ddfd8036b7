"""Tests for the composite (priority-chained) adapter."""

import pytest
from forge_core import AllAdaptersFailedError
from forge_core import CompositeAdapter
from forge_core import DataAdapter
from forge_core import FilesystemAdapter


def test_constructor_rejects_empty_list():
    with pytest.raises(ValueError, match="at least one adapter"):
        CompositeAdapter([])


def test_constructor_rejects_bad_writable_index(fake_adapter):
    with pytest.raises(ValueError, match="out of bounds"):
        CompositeAdapter([fake_adapter("a")], writable_index=1)

    with pytest.raises(ValueError):
        CompositeAdapter([fake_adapter("a")], writable_index=-1)


def test_adapters_satisfy_protocol(fake_adapter, tmp_path):
    """Test every adapter (and the composite itself) is a DataAdapter."""
    composite = CompositeAdapter([fake_adapter("a"), FilesystemAdapter(tmp_path)])

    assert isinstance(composite, DataAdapter)
    assert isinstance(FilesystemAdapter(tmp_path), DataAdapter)


@pytest.mark.asyncio
async def test_list_merges_with_priority(fake_adapter, bundle):
    """Test duplicate ids resolve to the higher-priority adapter's metadata."""
    primary = fake_adapter("primary", [bundle("skill", "developer", version="2.0.0")])
    secondary = fake_adapter(
        "secondary",
        [bundle("skill", "developer", version="1.0.0"), bundle("skill", "tester")],
    )

    skills = await CompositeAdapter([primary, secondary]).list("skill")

    by_id = {m.id: m for m in skills}
    assert sorted(by_id) == ["developer", "tester"]
    assert by_id["developer"].version == "2.0.0"


@pytest.mark.asyncio
async def test_list_tolerates_failing_adapter(fake_adapter, bundle):
    broken = fake_adapter("broken", fail=True)
    healthy = fake_adapter("healthy", [bundle("skill", "developer")])

    skills = await CompositeAdapter([broken, healthy]).list("skill")

    assert [m.id for m in skills] == ["developer"]


@pytest.mark.asyncio
async def test_read_first_success_wins(fake_adapter, bundle):
    """Test lower-priority adapters are not consulted after a success."""
    primary = fake_adapter("primary", [bundle("skill", "developer", content="primary")])
    secondary = fake_adapter("secondary", [bundle("skill", "developer", content="secondary")])

    result = await CompositeAdapter([primary, secondary]).read("skill", "developer")

    assert result.content == "primary"
    assert secondary.read_calls == []


@pytest.mark.asyncio
async def test_read_falls_through_failures(fake_adapter, bundle):
    """Test a failing and a missing adapter fall through to the next one."""
    broken = fake_adapter("broken", fail=True)
    empty = fake_adapter("empty")
    fallback = fake_adapter("fallback", [bundle("skill", "developer", content="fallback")])

    result = await CompositeAdapter([broken, empty, fallback]).read("skill", "developer")

    assert result.content == "fallback"


@pytest.mark.asyncio
async def test_read_all_failed_names_every_source(fake_adapter):
    composite = CompositeAdapter([fake_adapter("local", fail=True), fake_adapter("remote")])

    with pytest.raises(AllAdaptersFailedError) as exc_info:
        await composite.read("skill", "ghost")

    assert exc_info.value.code == "ALL_ADAPTERS_FAILED"
    assert exc_info.value.sources_tried == ["local", "remote"]
    assert "Sources tried: local, remote" in exc_info.value.message


@pytest.mark.asyncio
async def test_exists(fake_adapter, bundle):
    broken = fake_adapter("broken", fail=True)
    holder = fake_adapter("holder", [bundle("agent", "sdlc")])
    composite = CompositeAdapter([broken, holder])

    assert await composite.exists("agent", "sdlc")
    assert not await composite.exists("agent", "ghost")


@pytest.mark.asyncio
async def test_exists_false_when_all_fail(fake_adapter):
    composite = CompositeAdapter([fake_adapter("a", fail=True), fake_adapter("b", fail=True)])

    assert await composite.exists("skill", "developer") is False


@pytest.mark.asyncio
async def test_write_goes_to_writable_adapter(fake_adapter, bundle):
    first = fake_adapter("first")
    second = fake_adapter("second")
    composite = CompositeAdapter([first, second], writable_index=1)

    await composite.write("skill", "developer", bundle("skill", "developer"))

    assert composite.writable_adapter is second
    assert first.writes == []
    assert second.writes == [("skill", "developer")]


@pytest.mark.asyncio
async def test_list_empty_when_all_fail(fake_adapter):
    composite = CompositeAdapter([fake_adapter("a", fail=True), fake_adapter("b", fail=True)])

    assert await composite.list("skill") == []
