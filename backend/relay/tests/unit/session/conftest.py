import pytest

from relay.tests.helpers import create_populated_room


@pytest.fixture
async def populated(registry, hub):
    """Room ABC123 hosted by A with guests B and C, outboxes cleared."""
    room_id, conns = await create_populated_room(registry, hub, "A", ("B", "C"))
    return registry, room_id, conns
