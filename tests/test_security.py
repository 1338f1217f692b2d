"""Tests for scoped execution identity."""
import asyncio
import threading

import pytest

from security.context import ANONYMOUS, SYSTEM, Identity, current_identity, run_as


class TestRunAs:
    def test_default_is_anonymous(self):
        assert current_identity() == ANONYMOUS

    def test_sets_and_restores(self):
        with run_as(SYSTEM) as ident:
            assert ident is SYSTEM
            assert current_identity().is_system
        assert current_identity() == ANONYMOUS

    def test_restores_on_exception(self):
        with pytest.raises(ValueError):
            with run_as(SYSTEM):
                raise ValueError("boom")
        assert current_identity() == ANONYMOUS

    def test_nested_restores_previous(self):
        alice = Identity("alice")
        with run_as(alice):
            with run_as(SYSTEM):
                assert current_identity() == SYSTEM
            assert current_identity() == alice
        assert current_identity() == ANONYMOUS

    def test_does_not_leak_across_threads(self):
        seen = []
        entered = threading.Event()
        release = threading.Event()

        def elevated():
            with run_as(SYSTEM):
                entered.set()
                release.wait(timeout=5)

        t = threading.Thread(target=elevated)
        t.start()
        entered.wait(timeout=5)
        seen.append(current_identity())
        release.set()
        t.join()
        assert seen == [ANONYMOUS]

    @pytest.mark.asyncio
    async def test_does_not_leak_across_tasks(self):
        async def elevated():
            with run_as(SYSTEM):
                await asyncio.sleep(0.01)
                return current_identity()

        async def observer():
            await asyncio.sleep(0.005)
            return current_identity()

        inside, outside = await asyncio.gather(elevated(), observer())
        assert inside == SYSTEM
        assert outside == ANONYMOUS
