"""Fan-out of session snapshots to websocket subscribers and listeners."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List

Snapshot = Dict[str, Any]


class StateNotifier:
	"""Push every committed snapshot to observers without waiting on them."""

	def __init__(self, max_queue_size: int = 32) -> None:
		self._max_queue_size = max_queue_size
		self._queues: List[asyncio.Queue] = []
		self._listeners: List[Callable[[Snapshot], None]] = []

	def subscribe(self) -> asyncio.Queue:
		"""Return a queue that receives every future snapshot."""
		queue: asyncio.Queue = asyncio.Queue(maxsize=self._max_queue_size)
		self._queues.append(queue)
		return queue

	def unsubscribe(self, queue: asyncio.Queue) -> None:
		if queue in self._queues:
			self._queues.remove(queue)

	def add_listener(self, listener: Callable[[Snapshot], None]) -> None:
		"""Register a synchronous callback invoked on every snapshot."""
		self._listeners.append(listener)

	@property
	def subscriber_count(self) -> int:
		return len(self._queues)

	def publish(self, snapshot: Snapshot) -> None:
		for queue in list(self._queues):
			if queue.full():
				# Slow observer: keep the newest state, drop the oldest.
				queue.get_nowait()
			queue.put_nowait(snapshot)
		for listener in list(self._listeners):
			try:
				listener(snapshot)
			except Exception as exc:
				logging.error("State listener failed: %s", exc)
