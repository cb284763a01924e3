"""Confirmation code generation."""

import random

CODE_LENGTH = 6
# Excludes 0/O and 1/I so codes survive being read aloud.
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def generate_confirmation_code(rng: random.Random | None = None) -> str:
    """Draw a fixed-length code from the unambiguous alphabet."""
    chooser = rng or random.SystemRandom()
    return "".join(chooser.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


def normalize_confirmation_code(raw: str) -> str:
    """Normalize staff-entered codes before comparison."""
    return raw.strip().upper().replace(" ", "").replace("-", "")
