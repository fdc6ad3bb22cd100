"""Unit tests for keyed resource locks."""

import asyncio

import pytest

from conexus.core.locks import KeyedLock


@pytest.mark.asyncio
async def test_same_key_is_serialized():
    """Two holders of one key never overlap."""
    locks = KeyedLock()
    active = 0
    overlap = False

    async def critical_section():
        nonlocal active, overlap
        async with locks.hold("room:1"):
            active += 1
            if active > 1:
                overlap = True
            await asyncio.sleep(0.01)
            active -= 1

    await asyncio.gather(*(critical_section() for _ in range(5)))

    assert not overlap


@pytest.mark.asyncio
async def test_different_keys_do_not_block():
    """Test that holding one key leaves others free."""
    locks = KeyedLock()

    async with locks.hold("room:1"):
        assert locks.is_locked("room:1")
        assert not locks.is_locked("room:2")
        async with locks.hold("room:2"):
            assert locks.is_locked("room:2")


@pytest.mark.asyncio
async def test_locks_are_dropped_when_released():
    """The lock table only holds keys in use."""
    locks = KeyedLock()

    async with locks.hold("card:A"):
        assert len(locks) == 1

    assert len(locks) == 0
    assert not locks.is_locked("card:A")


@pytest.mark.asyncio
async def test_lock_released_on_error():
    """Test that an exception inside the block frees the key."""
    locks = KeyedLock()

    with pytest.raises(ValueError):
        async with locks.hold("registration:1"):
            raise ValueError("boom")

    assert len(locks) == 0
