"""Test harness for the Bucketwise chat pipeline.

In-memory implementations of the store protocols and a scripted chat
backend, so the controller and routes run without PostgreSQL or an LLM.

Example usage:

    from tests.harness import ChatWorld

    async def test_reply_is_persisted():
        world = ChatWorld.with_project("p1", owner="u1")
        session = world.session(user_id="u1")
        await session.prepare("p1", "goal_page", "Hi")
        frames = await world.collect(session)
"""

from tests.harness.fakes import (
    InMemoryBucketItemStore,
    InMemoryConversationStore,
    InMemoryDirectiveStore,
    InMemoryTenantLookup,
    ScriptedProvider,
)
from tests.harness.world import ChatWorld, make_token

__all__ = [
    "ChatWorld",
    "InMemoryBucketItemStore",
    "InMemoryConversationStore",
    "InMemoryDirectiveStore",
    "InMemoryTenantLookup",
    "ScriptedProvider",
    "make_token",
]
