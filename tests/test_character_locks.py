import asyncio

from rpg.sessions import CharacterLocks


def test_same_character_operations_do_not_interleave() -> None:
    async def scenario() -> None:
        locks = CharacterLocks()
        events: list[str] = []

        async def operation(label: str) -> None:
            async with locks.hold("hero"):
                events.append(f"{label}:start")
                await asyncio.sleep(0.01)
                events.append(f"{label}:end")

        await asyncio.gather(operation("a"), operation("b"))
        assert events in (
            ["a:start", "a:end", "b:start", "b:end"],
            ["b:start", "b:end", "a:start", "a:end"],
        )

    asyncio.run(scenario())


def test_different_characters_run_independently() -> None:
    async def scenario() -> None:
        locks = CharacterLocks()
        async with locks.hold("hero"):
            # Would deadlock if characters shared a lock.
            await asyncio.wait_for(_enter(locks, "rival"), timeout=1)
            assert (await locks.get("hero")).locked()
            assert await locks.discard("hero") is False
        assert await locks.discard("hero") is True
        assert await locks.keys() == ("rival",)

    asyncio.run(scenario())


async def _enter(locks: CharacterLocks, character_id: str) -> None:
    async with locks.hold(character_id):
        pass
