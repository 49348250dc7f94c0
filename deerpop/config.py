"""Configuration and logging for the deer population / insurance fund sweep."""

import logging
import math
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuration class using Pydantic BaseSettings.
    
    Supports loading from environment variables (prefix ``DEERPOP_``) and .env files.
    """
    
    model_config = SettingsConfigDict(
        env_prefix="DEERPOP_",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )
    
    # Model constants
    R1: float = math.log(1.702)  # deer max reproduction rate
    HARVEST: float = math.log(1.16)  # harvest rate of the deer
    CARRYING_CAPACITY: float = 28000.0
    RHO: float = 0.04  # bond fund rate of growth, log(1+rate)
    BETA: float = 9.0  # cost due to deer collisions, .003*3000
    G: float = 0.05  # net target rate of growth of the fund
    
    # Parameter grid
    P_MIN: float = 430000.0
    P_MAX: float = 530000.0
    NUM_P: int = Field(default=10, ge=0)
    ALPHA_MIN: float = 0.0
    ALPHA_MAX: float = 0.15
    NUM_ALPHA: int = Field(default=10, ge=0)
    
    # Time stepping
    INITIAL_TIME: float = 0.0
    FINAL_TIME: float = 10.0
    NUMBER_TIME_STEPS: int = Field(default=1000, gt=0)
    NUMBER_ITERS: int = Field(default=1000, gt=0)
    
    # Concurrency
    MAX_WORKERS: int = Field(default=3, ge=1)
    POOL_POLICY: Literal["steady", "batch"] = "steady"
    
    # Random seed (None draws fresh entropy once per process)
    RANDOM_STATE: Optional[int] = None
    
    # Output
    RESULTS_DIR: str = "results"
    OUTPUT_PREFIX: str = "trial"
    DEFAULT_FILE: str = "threaded_trial.csv"
    OUTPUT_FORMAT: Literal["csv", "binary"] = "csv"
    
    # Diagnostics
    VERBOSITY: int = Field(default=1, ge=0, le=2)
    CHECK_FINITE: bool = False
    
    @model_validator(mode="after")
    def _check_ranges(self) -> "Settings":
        """Reject empty or inverted ranges."""
        if self.FINAL_TIME <= self.INITIAL_TIME:
            raise ValueError("FINAL_TIME must be greater than INITIAL_TIME")
        if self.P_MAX < self.P_MIN:
            raise ValueError("P_MAX must not be below P_MIN")
        if self.ALPHA_MAX < self.ALPHA_MIN:
            raise ValueError("ALPHA_MAX must not be below ALPHA_MIN")
        return self
    
    @property
    def results_dir(self) -> Path:
        """Get results directory as Path object."""
        return Path(self.RESULTS_DIR)
    
    @property
    def dt(self) -> float:
        """Time step size."""
        return (self.FINAL_TIME - self.INITIAL_TIME) / float(self.NUMBER_TIME_STEPS)
    
    @property
    def log_level(self) -> int:
        """Logging level selected by VERBOSITY."""
        return {0: logging.WARNING, 1: logging.INFO, 2: logging.DEBUG}[self.VERBOSITY]
    
    def pair_parameters(self, P: float, alpha: float):
        """Model constants plus one swept (P, alpha) pair."""
        from deerpop.sim.params import ModelParameters
        
        return ModelParameters(
            r1=self.R1,
            h=self.HARVEST,
            F=self.CARRYING_CAPACITY,
            rho=self.RHO,
            beta=self.BETA,
            g=self.G,
            P=P,
            alpha=alpha,
        )
    
    def run_config(self):
        """Replication/step counts used by every sampler in the run."""
        from deerpop.sim.params import RunConfig
        
        return RunConfig(
            number_iters=self.NUMBER_ITERS,
            number_time_steps=self.NUMBER_TIME_STEPS,
            dt=self.dt,
            verbosity=self.VERBOSITY,
            check_finite=self.CHECK_FINITE,
        )
    
    def grid(self):
        """The (P, alpha) sweep."""
        from deerpop.sim.params import ParameterGrid
        
        return ParameterGrid(
            p_min=self.P_MIN,
            p_max=self.P_MAX,
            num_p=self.NUM_P,
            alpha_min=self.ALPHA_MIN,
            alpha_max=self.ALPHA_MAX,
            num_alpha=self.NUM_ALPHA,
        )


# Global configuration instance
cfg = Settings()


# Logging configuration
_logging_configured = False


def get_logger(name: str = "deerpop") -> logging.Logger:
    """Get or create a logger with consistent configuration.
    
    Configures logging.basicConfig once (INFO level) on first call.
    Subsequent calls return loggers with the same configuration.
    
    Args:
        name: Logger name (typically module name)
    
    Returns:
        Configured logger instance
    """
    global _logging_configured
    
    if not _logging_configured:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        _logging_configured = True
    
    return logging.getLogger(name)


def set_verbosity(level: int) -> None:
    """Apply a logging level to the whole ``deerpop`` logger tree."""
    logging.getLogger("deerpop").setLevel(level)


# Global logger instance
logger = get_logger("deerpop")
