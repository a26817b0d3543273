import json

import pytest

from hubsales.models import GeneratedArtifact, SessionContext
from hubsales.services.conversation_store import ConversationStore
from hubsales.services.redis import RedisCrudService


@pytest.mark.asyncio
async def test_read_context_missing_is_empty(store: ConversationStore) -> None:
    """An unknown conversation reads back as an empty context."""
    context = await store.read_context("conv-x", "user-1")
    assert context == SessionContext()
    assert context.is_empty()


@pytest.mark.asyncio
async def test_merge_is_additive(store: ConversationStore) -> None:
    """Two merges touching different fields leave both set."""
    assert await store.merge_context("conv-1", "user-1", {"budget_monthly": 5000})
    assert await store.merge_context("conv-1", "user-1", {"brand_name": "Acme"})
    context = await store.read_context("conv-1", "user-1")
    assert context.budget_monthly == 5000
    assert context.brand_name == "Acme"


@pytest.mark.asyncio
async def test_merge_is_idempotent(store: ConversationStore) -> None:
    await store.merge_context("conv-1", "user-1", {"notes": "x"})
    await store.merge_context("conv-1", "user-1", {"notes": "x"})
    context = await store.read_context("conv-1", "user-1")
    assert context.notes == "x"


@pytest.mark.asyncio
async def test_merge_never_nulls_existing_fields(store: ConversationStore) -> None:
    await store.merge_context("conv-1", "user-1", {"brand_name": "Acme", "objectives": ["awareness"]})
    await store.merge_context(
        "conv-1", "user-1", {"brand_name": None, "objectives": [], "notes": ""}
    )
    context = await store.read_context("conv-1", "user-1")
    assert context.brand_name == "Acme"
    assert context.objectives == ["awareness"]
    assert context.notes is None


@pytest.mark.asyncio
async def test_merge_rejects_unknown_fields(store: ConversationStore) -> None:
    with pytest.raises(ValueError, match="favorite_color"):
        await store.merge_context("conv-1", "user-1", {"favorite_color": "blue"})


@pytest.mark.asyncio
async def test_context_is_scoped_per_user(store: ConversationStore) -> None:
    await store.merge_context("conv-1", "user-1", {"brand_name": "Acme"})
    other = await store.read_context("conv-1", "user-2")
    assert other.brand_name is None


@pytest.mark.asyncio
async def test_read_context_skips_corrupt_fields(store: ConversationStore, memory_redis) -> None:
    memory_redis.hashes["conversation:user-1:conv-1:context"] = {
        "brand_name": json.dumps("Acme"),
        "notes": "{not json",
    }
    context = await store.read_context("conv-1", "user-1")
    assert context.brand_name == "Acme"
    assert context.notes is None


@pytest.mark.asyncio
async def test_clear_context(store: ConversationStore) -> None:
    await store.merge_context("conv-1", "user-1", {"brand_name": "Acme"})
    assert await store.clear_context("conv-1", "user-1") is True
    assert (await store.read_context("conv-1", "user-1")).is_empty()


@pytest.mark.asyncio
async def test_generated_files_round_trip(store: ConversationStore) -> None:
    first = GeneratedArtifact(
        id="f1",
        filename="proposal.md",
        file_type="proposal_md",
        storage_key="conversations/conv-1/generated/proposal.md",
    )
    second = GeneratedArtifact(
        id="f2",
        filename="package.csv",
        file_type="package_csv",
        storage_key="conversations/conv-1/generated/package.csv",
    )
    assert await store.add_generated_file("conv-1", "user-1", first)
    assert await store.add_generated_file("conv-1", "user-1", second)

    files = await store.get_generated_files("conv-1", "user-1")
    assert [f.id for f in files] == ["f1", "f2"]
    assert files[0].created_at == first.created_at

    found = await store.get_generated_file("conv-1", "user-1", "f2")
    assert found is not None and found.filename == "package.csv"
    assert await store.get_generated_file("conv-1", "user-1", "nope") is None


@pytest.mark.asyncio
async def test_ttl_applied_to_writes(redis_crud: RedisCrudService, memory_redis) -> None:
    store = ConversationStore(redis_crud=redis_crud, ttl_seconds=120)
    await store.merge_context("conv-1", "user-1", {"brand_name": "Acme"})
    assert memory_redis.ttls["conversation:user-1:conv-1:context"] == 120


@pytest.mark.asyncio
async def test_writes_fail_when_disconnected() -> None:
    store = ConversationStore(redis_crud=RedisCrudService("redis://localhost:6379/0"))
    assert await store.merge_context("conv-1", "user-1", {"brand_name": "Acme"}) is False
    assert await store.get_generated_files("conv-1", "user-1") == []
    assert (await store.read_context("conv-1", "user-1")).is_empty()
