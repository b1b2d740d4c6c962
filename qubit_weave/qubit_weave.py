import random
import sys
from typing import Any

import jax
import jax.numpy as jnp

_INVERSE_METHODS = ("pinv", "inv")


class Config:
    _instance = None

    def __new__(cls, *args: Any, **kwargs: Any) -> "Config":
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls, *args, **kwargs)
        return cls._instance

    def __init__(self) -> None:
        if not hasattr(self, "_initialized"):
            self._initialized = True  # Prevents reinitialization
            self._random_seed = random.randint(0, sys.maxsize)
            self._key = jax.random.PRNGKey(self._random_seed)
            self._overrotation = False
            self._use_jit = False
            self._calibration_inverse = "pinv"

    def set_seed(self, seed: int) -> None:
        """
        For reproducability one can set a seed for random operations
        Parameters
        ----------
        seed: int
            Seed to be used by random processes (overrotation sampling)
        """
        self._random_seed = seed
        self._key = jax.random.PRNGKey(seed)

    @property
    def random_seed(self) -> int:
        return self._random_seed

    @property
    def random_key(self) -> jnp.ndarray:
        """
        Splits the current key and returns a new one for random operations
        """
        key, self._key = jax.random.split(self._key)
        return key

    @property
    def overrotation(self) -> bool:
        """
        Whether ``Circuit.overrotate`` perturbs the targeted gates. When
        disabled the overrotation pragmas are only stripped.
        """
        return self._overrotation

    def set_overrotation(self, overrotation: bool) -> None:
        self._overrotation = bool(overrotation)

    @property
    def use_jit(self) -> bool:
        return self._use_jit

    def set_use_jit(self, use_jit: bool) -> None:
        self._use_jit = bool(use_jit)

    @property
    def calibration_inverse(self) -> str:
        return self._calibration_inverse

    def set_calibration_inverse(self, method: str) -> None:
        """
        Selects how readout calibration matrices are inverted
        Parameters
        ----------
        method: str
            ``"pinv"`` for the Moore-Penrose pseudo inverse or ``"inv"``
            for the exact inverse
        """
        if method not in _INVERSE_METHODS:
            raise ValueError(
                f"Unknown inversion method '{method}', expected one of {_INVERSE_METHODS}"
            )
        self._calibration_inverse = method


class Session:
    """
    Lightweight context manager to scope Config settings per run.

    Example:
        with Session(seed=0, overrotation=True):
            ...
    Restores previous Config values on exit so tests/runs stay isolated.
    """

    def __init__(
        self,
        *,
        seed: int | None = None,
        overrotation: bool | None = None,
        use_jit: bool | None = None,
        calibration_inverse: str | None = None,
    ) -> None:
        cfg = Config()
        self._prev = {
            "seed": cfg.random_seed,
            "key": cfg._key,  # type: ignore[attr-defined]
            "overrotation": cfg.overrotation,
            "use_jit": cfg.use_jit,
            "calibration_inverse": cfg.calibration_inverse,
        }
        self._seed = seed
        self._overrotation = overrotation
        self._use_jit = use_jit
        self._calibration_inverse = calibration_inverse
        self._cfg = cfg

    def __enter__(self) -> "Config":
        if self._seed is not None:
            self._cfg.set_seed(self._seed)
        if self._overrotation is not None:
            self._cfg.set_overrotation(self._overrotation)
        if self._use_jit is not None:
            self._cfg.set_use_jit(self._use_jit)
        if self._calibration_inverse is not None:
            self._cfg.set_calibration_inverse(self._calibration_inverse)
        return self._cfg

    def __exit__(self, exc_type, exc, tb) -> None:
        self._cfg._random_seed = self._prev["seed"]  # type: ignore[attr-defined]
        self._cfg._key = self._prev["key"]  # type: ignore[attr-defined]
        self._cfg.set_overrotation(self._prev["overrotation"])
        self._cfg.set_use_jit(self._prev["use_jit"])
        self._cfg.set_calibration_inverse(self._prev["calibration_inverse"])
