from language_buddy.events import EventBus


def test_every_subscriber_gets_each_event():
	bus = EventBus()
	first, second = bus.subscribe(), bus.subscribe()
	bus.publish({"type": "state", "state": "recording"})
	assert first.get_nowait() == second.get_nowait() == {"type": "state", "state": "recording"}


def test_unsubscribed_queue_gets_nothing():
	bus = EventBus()
	queue = bus.subscribe()
	bus.unsubscribe(queue)
	bus.unsubscribe(queue)
	bus.publish({"type": "cleared"})
	assert queue.empty()
	assert bus.subscriber_count == 0


def test_full_queue_drops_events():
	bus = EventBus(maxsize=2)
	slow, fast = bus.subscribe(), bus.subscribe()
	for i in range(3):
		bus.publish({"type": "message", "index": i})
		fast.get_nowait()
	assert slow.qsize() == 2
	assert slow.get_nowait()["index"] == 0
