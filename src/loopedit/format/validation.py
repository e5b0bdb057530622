"""Validation of waves at the file boundary."""

import math
from dataclasses import dataclass

import numpy as np

from loopedit.types import Wave


class ValidationError(Exception):
    """Error during wave validation."""

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


@dataclass
class ValidationResult:
    """Result of validation with optional warnings."""

    valid: bool
    errors: list[str]
    warnings: list[str]

    @classmethod
    def success(cls, warnings: list[str] | None = None) -> "ValidationResult":
        """Create a successful validation result."""
        return cls(valid=True, errors=[], warnings=warnings or [])

    @classmethod
    def failure(cls, errors: list[str], warnings: list[str] | None = None) -> "ValidationResult":
        """Create a failed validation result."""
        return cls(valid=False, errors=errors, warnings=warnings or [])


def validate_wave(wave: Wave) -> ValidationResult:
    """Check a wave for structural correctness and export concerns.

    Errors:
    - sample rate must be positive
    - samples must be finite
    - loop bounds must satisfy 0 <= loop_start < loop_end <= len
    - root_fine must be in [0, 100)

    Warnings:
    - loop bounds that are not whole samples (the smpl chunk stores integers)
    - samples outside [-1, 1] (clipped on export)
    - root note outside the MIDI range

    Args:
        wave: The wave to validate.

    Returns:
        ValidationResult with errors and warnings.
    """
    errors: list[str] = []
    warnings: list[str] = []

    if wave.sample_rate <= 0:
        errors.append(f"sample_rate must be > 0, got {wave.sample_rate}")

    if len(wave) and not np.all(np.isfinite(wave.samples)):
        nan_count = int(np.sum(np.isnan(wave.samples)))
        inf_count = int(np.sum(np.isinf(wave.samples)))
        errors.append(f"Samples contain non-finite values ({nan_count} NaN, {inf_count} Inf)")
    elif len(wave) and np.max(np.abs(wave.samples)) > 1.0:
        max_abs = float(np.max(np.abs(wave.samples)))
        warnings.append(f"Samples exceed [-1, 1] range, max |sample| = {max_abs:.4f}")

    if wave.has_loop:
        if not 0 <= wave.loop_start < wave.loop_end <= len(wave):
            errors.append(
                f"Loop [{wave.loop_start}, {wave.loop_end}) must lie within 0..{len(wave)} "
                "with start before end"
            )
        if wave.loop_start != math.floor(wave.loop_start) or wave.loop_end != math.floor(
            wave.loop_end
        ):
            warnings.append(
                f"Loop [{wave.loop_start}, {wave.loop_end}) is not sample aligned "
                "and will be truncated on export"
            )
    elif wave.loop_end != wave.loop_start:
        errors.append(f"loop_end is {wave.loop_end} but the wave has no loop")

    if not 0 <= wave.root_fine < 100:
        errors.append(f"root_fine must be in [0, 100), got {wave.root_fine}")

    if not 0 <= wave.root_note <= 127:
        warnings.append(f"root_note {wave.root_note} is outside the MIDI range")

    if errors:
        return ValidationResult.failure(errors, warnings)
    return ValidationResult.success(warnings)
