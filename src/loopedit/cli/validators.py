def validate_positive_integer(type_: object, value: int | None) -> None:
    if value is not None and value <= 0:
        raise ValueError("Value must be a positive integer")


def validate_positive_float(type_: object, value: float | None) -> None:
    if value is not None and not value > 0:
        raise ValueError("Value must be greater than 0")


def validate_non_negative_float(type_: object, value: float | None) -> None:
    if value is not None and not value >= 0:
        raise ValueError("Value must not be negative")


def validate_unit_interval(type_: object, value: float) -> None:
    """Validate that value lies in [0, 1]."""
    if not 0.0 <= value <= 1.0:
        raise ValueError("Value must be between 0.0 and 1.0")


def validate_midi_note(type_: object, value: int | None) -> None:
    if value is not None and not 0 <= value <= 127:
        raise ValueError("MIDI note must be between 0 and 127")
