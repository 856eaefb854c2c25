from __future__ import annotations

import asyncio
import threading

import pytest

from fxclient.services.runtime import BackgroundLoop


def test_run_executes_on_the_loop_thread():
    loop = BackgroundLoop(name="fx-test-loop")
    loop.start()

    async def _thread_name():
        await asyncio.sleep(0)
        return threading.current_thread().name

    try:
        assert loop.running is True
        assert loop.run(_thread_name()) == "fx-test-loop"
    finally:
        loop.stop()

    assert loop.running is False


def test_run_starts_the_loop_lazily():
    loop = BackgroundLoop()

    async def _value():
        return 7

    try:
        assert loop.run(_value()) == 7
    finally:
        loop.stop()


def test_run_propagates_exceptions():
    loop = BackgroundLoop()

    async def _boom():
        raise ValueError("nope")

    try:
        with pytest.raises(ValueError):
            loop.run(_boom())
    finally:
        loop.stop()


def test_run_timeout_cancels_the_coroutine():
    loop = BackgroundLoop()
    cancelled = threading.Event()

    async def _slow():
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.set()
            raise

    try:
        with pytest.raises(TimeoutError):
            loop.run(_slow(), timeout=0.05)
        assert cancelled.wait(1.0)
    finally:
        loop.stop()


def test_stop_is_idempotent():
    loop = BackgroundLoop()
    loop.stop()
    loop.start()
    loop.stop()
    loop.stop()

    assert loop.running is False
