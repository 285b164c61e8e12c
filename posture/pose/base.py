from __future__ import annotations

from abc import ABC, abstractmethod

from posture.images import NormalizedImage
from posture.pose.types import JointMap


class KeypointProvider(ABC):
	"""
	Model adapter interface.

	Implementations take a NormalizedImage and return the joints they found. An image
	with no person yields an empty map; an outright failure raises DetectionError.
	"""

	@abstractmethod
	def name(self) -> str: ...

	@abstractmethod
	def detect(self, image: NormalizedImage) -> JointMap: ...

	@abstractmethod
	def close(self) -> None: ...
