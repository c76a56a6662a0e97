"""
Configuration objects for the Bully election simulation.

Configuration is built incrementally through setters and checked as a whole by `validate()`, which returns a list
of human readable problems instead of raising. Components that consume a configuration raise
[ConfigError][bullysim.election.errors.ConfigError] when that list is not empty.
"""
import logging
from typing import Any, Dict, List, Optional

DEFAULT_MIN_CLUSTER_SIZE = 3
DEFAULT_MAX_CLUSTER_SIZE = 10


class FailureConfig:
    """
    Timing of failure handling, in simulation seconds.
    """

    def __init__(self):
        self._reelection_delay = 0.8
        self._detection_interval = 3.0
        self._detection_reelection_delay = 0.5

    def set_reelection_delay(self, seconds: float) -> None:
        """
        Sets the delay between a leader failing and the re-election it triggers. The delay only lets an observer
        notice the missing leader, the protocol does not depend on it.
        """
        self._reelection_delay = seconds

    def set_detection_interval(self, seconds: float) -> None:
        """Sets the period of the automatic failure detector."""
        self._detection_interval = seconds

    def set_detection_reelection_delay(self, seconds: float) -> None:
        """Sets the delay between the detector noticing a missing leader and the election it starts."""
        self._detection_reelection_delay = seconds

    def get_reelection_delay(self) -> float:
        return self._reelection_delay

    def get_detection_interval(self) -> float:
        return self._detection_interval

    def get_detection_reelection_delay(self) -> float:
        return self._detection_reelection_delay

    def validate(self) -> List[str]:
        errors = []
        if self._reelection_delay < 0:
            errors.append(f"Re-election delay must not be negative, got {self._reelection_delay}")
        if self._detection_interval <= 0:
            errors.append(f"Detection interval must be positive, got {self._detection_interval}")
        if self._detection_reelection_delay < 0:
            errors.append(f"Detection re-election delay must not be negative, got "
                          f"{self._detection_reelection_delay}")
        return errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reelection_delay": self._reelection_delay,
            "detection_interval": self._detection_interval,
            "detection_reelection_delay": self._detection_reelection_delay,
        }


class BullyConfig:
    """
    Configuration of a Bully election cluster.

    Example:
        config = BullyConfig()
        config.set_cluster_size_range(3, 10)
        config.set_random_seed(42)
        config.set_logging(enable=True, level="DEBUG")
        config.get_failure_config().set_reelection_delay(0.8)

        errors = config.validate()
    """

    def __init__(self):
        self._min_cluster_size = DEFAULT_MIN_CLUSTER_SIZE
        self._max_cluster_size = DEFAULT_MAX_CLUSTER_SIZE
        self._random_seed: Optional[int] = None
        self._enable_logging = True
        self._log_level = "INFO"
        self._failure_config = FailureConfig()

    def set_cluster_size_range(self, min_size: int, max_size: int) -> None:
        """
        Sets the accepted number of nodes in a cluster, both ends inclusive.
        """
        self._min_cluster_size = min_size
        self._max_cluster_size = max_size

    def set_random_seed(self, seed: Optional[int]) -> None:
        """
        Seeds the random choices of the simulation: which node starts a re-election and which node fails on a
        random failure. None uses an unseeded generator.
        """
        self._random_seed = seed

    def set_logging(self, enable: bool = True, level: str = "INFO") -> None:
        self._enable_logging = enable
        self._log_level = level.upper()

    def get_failure_config(self) -> FailureConfig:
        return self._failure_config

    def get_cluster_size_range(self) -> tuple:
        return self._min_cluster_size, self._max_cluster_size

    def get_random_seed(self) -> Optional[int]:
        return self._random_seed

    def is_logging_enabled(self) -> bool:
        return self._enable_logging

    def get_log_level(self) -> int:
        return getattr(logging, self._log_level)

    def validate(self) -> List[str]:
        errors = []
        if self._min_cluster_size < 1:
            errors.append(f"Minimum cluster size must be at least 1, got {self._min_cluster_size}")
        if self._max_cluster_size < self._min_cluster_size:
            errors.append(f"Maximum cluster size {self._max_cluster_size} is smaller than minimum cluster size "
                          f"{self._min_cluster_size}")
        if not isinstance(getattr(logging, self._log_level, None), int):
            errors.append(f"Unknown log level '{self._log_level}'")
        errors.extend(self._failure_config.validate())
        return errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "min_cluster_size": self._min_cluster_size,
            "max_cluster_size": self._max_cluster_size,
            "random_seed": self._random_seed,
            "enable_logging": self._enable_logging,
            "log_level": self._log_level,
            "failure": self._failure_config.to_dict(),
        }
