import asyncio
import logging

from posture.events import EventEmitter


async def test_failing_async_listener_is_logged(caplog):
	em = EventEmitter()
	got = []

	async def bad(event):
		raise RuntimeError("boom")

	async def good(event):
		got.append(event["type"])

	em.add_listener(bad)
	em.add_listener(good)
	with caplog.at_level(logging.ERROR, logger="posture.events"):
		em.emit({"type": "item_updated"})
		assert em.pending == 2
		await em.drain()
		await asyncio.sleep(0)

	assert got == ["item_updated"]
	assert em.pending == 0
	records = [r for r in caplog.records if r.name == "posture.events"]
	assert any("listener failed" in r.getMessage() and "item_updated" in r.getMessage() for r in records)
	assert any(r.exc_info and isinstance(r.exc_info[1], RuntimeError) for r in records)


def test_failing_sync_listener_is_logged(caplog):
	em = EventEmitter()
	got = []

	def bad(event):
		raise ValueError("nope")

	em.add_listener(bad)
	em.add_listener(got.append)
	with caplog.at_level(logging.ERROR, logger="posture.events"):
		em.emit({"type": "capture_state"})

	assert got == [{"type": "capture_state"}]
	assert any("listener failed" in r.getMessage() for r in caplog.records)


def test_listeners_are_added_once_and_removable():
	em = EventEmitter()
	got = []
	em.add_listener(got.append)
	em.add_listener(got.append)
	em.emit({"type": "a"})
	em.remove_listener(got.append)
	em.remove_listener(got.append)
	em.emit({"type": "b"})
	assert got == [{"type": "a"}]
