"""Calendar math, cycle prediction, phase classification and logging helpers."""
