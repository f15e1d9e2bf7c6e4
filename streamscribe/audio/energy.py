"""Signal energy helpers used by capture and the voice activity gate."""

from dataclasses import dataclass
from typing import Optional

import numpy as np

_FLOOR = 1e-8


@dataclass(frozen=True)
class Energy:
    """Energy statistics of one audio block."""
    rms: float
    avg: float
    peak: float


def calculate_energy(samples: np.ndarray) -> Energy:
    """Compute RMS, mean magnitude and peak of a block of samples."""
    if samples.size == 0:
        return Energy(rms=0.0, avg=0.0, peak=0.0)

    magnitude = np.abs(samples.astype(np.float32, copy=False))
    return Energy(
        rms=float(np.sqrt(np.mean(np.square(magnitude)))),
        avg=float(np.mean(magnitude)),
        peak=float(np.max(magnitude)),
    )


def calculate_relative_energy(energy: float, reference: Optional[float] = None) -> float:
    """Rescale a block energy in dB against a quiet reference, clamped to [0, 1].

    The reference maps to 0 and full scale (0 dB) maps to 1.
    """
    reference = max(_FLOOR, reference if reference is not None else 1e-3)
    reference_db = 20 * np.log10(reference)
    if reference_db >= 0:
        return 0.0

    energy_db = 20 * np.log10(max(_FLOOR, energy))
    normalized = (energy_db - reference_db) / (0 - reference_db)
    return float(min(max(normalized, 0.0), 1.0))


def level_meter(samples: np.ndarray, width: int = 40) -> str:
    """Render the RMS level of a block as a text bar for debug logs."""
    if samples.size == 0:
        return "(no samples)"
    rms = calculate_energy(samples).rms
    bars = int(min(max(rms * 1000, 0), width))
    return f"{rms:.4f} {'#' * bars}"
