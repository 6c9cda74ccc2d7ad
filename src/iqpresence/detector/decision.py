"""Reduce depthwise scores to a single presence decision."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

import numpy as np
from numpy.typing import NDArray

from iqpresence.detector.metadata import PresenceMetadata

if TYPE_CHECKING:
	from iqpresence.sensor.processing import ProcessingResult


@dataclass
class PresenceResult:
	"""Outcome of one processed frame.

	The depthwise arrays are float32 views into the buffer handed to
	PresenceDetector.process(). They are only valid until that buffer is used
	for the next frame; call copy() to keep them.
	"""

	presence_detected: bool = False
	intra_presence_score: float = 0.0
	inter_presence_score: float = 0.0
	presence_distance: float = 0.0
	depthwise_intra_presence_scores: NDArray[np.float32] = field(
		default_factory=lambda: np.zeros(0, dtype=np.float32)
	)
	depthwise_inter_presence_scores: NDArray[np.float32] = field(
		default_factory=lambda: np.zeros(0, dtype=np.float32)
	)
	processing_result: ProcessingResult | None = None

	def copy(self) -> PresenceResult:
		"""Result whose depthwise arrays no longer alias the frame buffer."""
		return replace(
			self,
			depthwise_intra_presence_scores=self.depthwise_intra_presence_scores.copy(),
			depthwise_inter_presence_scores=self.depthwise_inter_presence_scores.copy(),
		)

	def to_dict(self) -> dict[str, Any]:
		return {
			"presence_detected": self.presence_detected,
			"intra_presence_score": self.intra_presence_score,
			"inter_presence_score": self.inter_presence_score,
			"presence_distance": self.presence_distance,
		}


def peak(scores: NDArray) -> tuple[int, float]:
	"""Index and value of the maximum; ties resolve to the closest point."""
	if scores.size == 0:
		return 0, 0.0
	index = int(np.argmax(scores))
	return index, float(scores[index])


@dataclass
class DecisionAggregator:
	"""Combines intra and inter depthwise scores into a PresenceResult."""

	metadata: PresenceMetadata
	intra_enabled: bool = True
	inter_enabled: bool = True
	intra_threshold: float = 1.3
	inter_threshold: float = 1.0

	def decide(
		self,
		intra_scores: NDArray[np.float32],
		inter_scores: NDArray[np.float32],
	) -> PresenceResult:
		_, intra_score = peak(intra_scores)
		_, inter_score = peak(inter_scores)

		detected = (self.intra_enabled and intra_score > self.intra_threshold) or (
			self.inter_enabled and inter_score > self.inter_threshold
		)

		distance = 0.0
		if detected:
			index, _ = peak(np.maximum(intra_scores, inter_scores))
			distance = self.metadata.distance(index)

		return PresenceResult(
			presence_detected=bool(detected),
			intra_presence_score=intra_score,
			inter_presence_score=inter_score,
			presence_distance=distance,
			depthwise_intra_presence_scores=intra_scores,
			depthwise_inter_presence_scores=inter_scores,
		)
