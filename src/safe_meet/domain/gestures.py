"""Hand gesture catalog for photo verification challenges."""

import random
from dataclasses import dataclass


@dataclass(frozen=True)
class GestureChallenge:
    """A hand sign the buyer must show in the verification photo."""

    gesture: str
    display_icon: str
    instruction_text: str


GESTURE_CATALOG: tuple[GestureChallenge, ...] = (
    GestureChallenge("peace", "✌️", "Show the peace sign (V sign)."),
    GestureChallenge("thumbs_up", "👍", "Show a thumbs up."),
    GestureChallenge("ok", "👌", "Form a circle with your thumb and index finger."),
    GestureChallenge("rock_on", "🤘", "Extend your index and little finger."),
    GestureChallenge(
        "love_you", "🤟", "Extend your thumb, index and little finger."
    ),
    GestureChallenge(
        "fingers_crossed", "🤞", "Cross your index and middle finger."
    ),
    GestureChallenge(
        "call_me", "🤙", "Make a phone with your thumb and little finger."
    ),
    GestureChallenge(
        "vulcan_salute",
        "🖖",
        "Part your index and middle finger from your ring and little finger.",
    ),
)

_BY_KEY = {challenge.gesture: challenge for challenge in GESTURE_CATALOG}


def generate_challenge(rng: random.Random | None = None) -> GestureChallenge:
    """Pick a gesture uniformly from the catalog."""
    chooser = rng or random.SystemRandom()
    return chooser.choice(GESTURE_CATALOG)


def gesture_by_key(key: str) -> GestureChallenge:
    """Resolve a stored gesture key to its catalog entry."""
    try:
        return _BY_KEY[key]
    except KeyError as exc:
        raise ValueError(f"Unknown gesture: {key}") from exc
