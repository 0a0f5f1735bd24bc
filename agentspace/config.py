"""
AgentSpace Configuration

Loads configuration from environment variables with sensible defaults.
"""

import os
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Config:
    """Application configuration loaded from environment variables."""

    # Run controller defaults
    DEFAULT_MAX_ROUNDS: int = int(os.getenv("AGENTSPACE_MAX_ROUNDS", "100"))
    DEFAULT_CONVERGENCE_THRESHOLD: float = float(
        os.getenv("AGENTSPACE_CONVERGENCE_THRESHOLD", "1.0")
    )

    # Contemplative (Monte-Carlo) behavior
    MONTE_CARLO_SAMPLES: int = int(os.getenv("AGENTSPACE_MONTE_CARLO_SAMPLES", "30"))
    MONTE_CARLO_DEPTH: int = int(os.getenv("AGENTSPACE_MONTE_CARLO_DEPTH", "12"))

    # Agent substrate limits
    MEMORY_LIMIT: int = int(os.getenv("AGENTSPACE_MEMORY_LIMIT", "500"))
    EVENT_LOG_LIMIT: int = int(os.getenv("AGENTSPACE_EVENT_LOG_LIMIT", "1000"))

    # Logging
    VERBOSE: bool = _env_flag("AGENTSPACE_VERBOSE")

    @classmethod
    def validate(cls) -> None:
        """Validate configuration and raise errors for out-of-range values."""
        if cls.DEFAULT_MAX_ROUNDS < 1:
            raise ValueError(
                "AGENTSPACE_MAX_ROUNDS must be at least 1 "
                f"(got {cls.DEFAULT_MAX_ROUNDS})"
            )

        if not 0.0 <= cls.DEFAULT_CONVERGENCE_THRESHOLD <= 1.0:
            raise ValueError(
                "AGENTSPACE_CONVERGENCE_THRESHOLD must lie in [0, 1] "
                f"(got {cls.DEFAULT_CONVERGENCE_THRESHOLD})"
            )

        if cls.MONTE_CARLO_SAMPLES < 1 or cls.MONTE_CARLO_DEPTH < 1:
            raise ValueError(
                "AGENTSPACE_MONTE_CARLO_SAMPLES and AGENTSPACE_MONTE_CARLO_DEPTH "
                "must both be positive"
            )

        if cls.MEMORY_LIMIT < 1:
            raise ValueError("AGENTSPACE_MEMORY_LIMIT must be positive")

    @classmethod
    def display(cls) -> str:
        """Return a formatted string showing current configuration."""
        lines = [
            "AgentSpace Configuration:",
            f"  Max Rounds: {cls.DEFAULT_MAX_ROUNDS}",
            f"  Convergence Threshold: {cls.DEFAULT_CONVERGENCE_THRESHOLD}",
            f"  Monte-Carlo: {cls.MONTE_CARLO_SAMPLES} samples, depth {cls.MONTE_CARLO_DEPTH}",
            f"  Memory Limit: {cls.MEMORY_LIMIT}",
            f"  Verbose: {cls.VERBOSE}",
        ]
        return "\n".join(lines)
