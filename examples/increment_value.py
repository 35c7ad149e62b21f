"""Increment a field from one task while another task listens for the change."""

import asyncio
from dataclasses import dataclass

from scopewatch import Tracker


@dataclass
class StoreType:
    val: int


async def main():
    # Create our Tracker instance.
    data_store = Tracker(StoreType(val=123), name="store")
    # Create a subscription to receive all changes.
    changes = data_store.listen()

    async def cause_change():
        await asyncio.sleep(0)
        with data_store.begin_mutation() as scoped_store:
            assert scoped_store.val == 123
            scoped_store.val += 1

    asyncio.create_task(cause_change())

    # For each change notification, do this.
    async for old_value, new_value in changes:
        assert old_value.val == 123
        assert new_value.val == 124
        print(f"val: {old_value.val} -> {new_value.val}")
        break

    # Check that the value was incremented.
    assert data_store.read().val == 124
    data_store.close()


if __name__ == "__main__":
    asyncio.run(main())
