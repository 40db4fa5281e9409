# locproof/config.py
"""
Configuration for proof generation and verification.

Library entry points take an explicit ``ProofConfig``; nothing in the package
reads process state on its own. ``ProofConfig.from_env()`` exists for the CLI
and other top-level callers.

Environment Variables (read only by ``from_env``):
    LOCPROOF_VALIDITY_MS: Default proof lifetime in ms (default: 50 days)
    LOCPROOF_FRAMING: Intent framing, "length_prefixed" or "raw"
        (default: length_prefixed)
    LOCPROOF_PRIVATE_KEY: Server signing key (JWK JSON or hex seed), CLI only
"""

import os
import time
from dataclasses import dataclass, field
from typing import Callable, Final, Mapping, Optional

from locproof.intent import IntentFraming


# Default proof lifetime: 50 days.
DEFAULT_VALIDITY_MS: Final[int] = 50 * 24 * 60 * 60 * 1000

ENV_VALIDITY_MS: Final[str] = "LOCPROOF_VALIDITY_MS"
ENV_FRAMING: Final[str] = "LOCPROOF_FRAMING"
ENV_PRIVATE_KEY: Final[str] = "LOCPROOF_PRIVATE_KEY"


def now_ms() -> int:
    """Wall-clock time in milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


@dataclass(frozen=True)
class ProofConfig:
    """
    Settings shared by the proof generator and verifier.

    Attributes:
        default_validity_ms: Lifetime applied when claims carry no deadline.
        framing: Intent framing used for signing and verification.
        clock: Returns the current time in epoch milliseconds.
    """

    default_validity_ms: int = DEFAULT_VALIDITY_MS
    framing: IntentFraming = IntentFraming.LENGTH_PREFIXED
    clock: Callable[[], int] = field(default=now_ms, compare=False)

    def __post_init__(self) -> None:
        if self.default_validity_ms < 0:
            raise ValueError("default_validity_ms must be non-negative")
        object.__setattr__(self, "framing", IntentFraming(self.framing))

    def now(self) -> int:
        return self.clock()

    def default_deadline(self) -> int:
        return self.now() + self.default_validity_ms

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ProofConfig":
        """
        Build a config from environment variables.

        Raises:
            ValueError: If a variable holds an invalid value.
        """
        env = os.environ if environ is None else environ
        validity = env.get(ENV_VALIDITY_MS)
        framing = env.get(ENV_FRAMING)
        return cls(
            default_validity_ms=int(validity) if validity else DEFAULT_VALIDITY_MS,
            framing=IntentFraming(framing) if framing else IntentFraming.LENGTH_PREFIXED,
        )


DEFAULT_CONFIG: Final[ProofConfig] = ProofConfig()
