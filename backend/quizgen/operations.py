from __future__ import annotations
from enum import Enum
from typing import Awaitable, Callable, Generic, Optional, TypeVar

T = TypeVar("T")


class OperationStatus(str, Enum):
	IDLE = "idle"
	PENDING = "pending"
	SUCCEEDED = "succeeded"
	FAILED = "failed"


class Operation(Generic[T]):
	"""
	State of one independent long-running remote call.

	Each listening section owns one of these. Operations share nothing, so
	several may be pending at once. Running again simply replaces the outcome;
	there is no deduplication or cancellation.
	"""

	def __init__(self) -> None:
		self.status: OperationStatus = OperationStatus.IDLE
		self.result: Optional[T] = None
		self.error: Optional[Exception] = None

	async def run(self, work: Callable[[], Awaitable[T]]) -> T:
		self.status = OperationStatus.PENDING
		self.error = None
		try:
			result = await work()
		except Exception as err:
			self.status = OperationStatus.FAILED
			self.result = None
			self.error = err
			raise
		self.status = OperationStatus.SUCCEEDED
		self.result = result
		return result

	def describe(self) -> dict:
		return {
			"status": self.status.value,
			"error": str(self.error) if self.error is not None else None,
		}
