"""
Project: GPS Gridder
Date: 10/16/26 9:20 AM
"""

import numpy as np
from dataclasses import dataclass, field
from typing import Optional, Any, Union

# app
from ..core.type_declarations import (NormalizationMode, SvdMode, FudgeMode, WeightingMode,
                                      CoordinateMode, ConfigError)


def coerce_enum(enum_class, value):
    """accept an enum member, its integer value or its (case insensitive) name"""
    if isinstance(value, enum_class):
        return value
    if isinstance(value, str):
        try:
            return enum_class[value.strip().upper()]
        except KeyError:
            raise ConfigError(f"'{value}' is not a valid {enum_class.__name__}, use one of: "
                              f"{', '.join(m.name.lower() for m in enum_class)}")
    try:
        return enum_class(int(value))
    except (ValueError, TypeError):
        raise ConfigError(f"'{value}' is not a valid {enum_class.__name__}")


@dataclass
class BaseDataClass:
    """
    base class for data manipulated by user preventing adding non-existent elements to the class
    """
    def __post_init__(self):
        # after initialization
        self._allowed_attributes = {item for item in dir(self) if item[0] != '_'}

    def __setattr__(self, name: str, value: Any) -> None:
        if hasattr(self, '_allowed_attributes') and name not in self._allowed_attributes:
            raise AttributeError(f"'{type(self).__name__}' has no attribute '{name}'. ")
        super().__setattr__(name, value)


# ============================================================================
# Configuration sections
# ============================================================================

@dataclass
class SolverOptions(BaseDataClass):
    """Linear solver selection (-C in the command line)"""
    use_svd: bool = False
    svd_mode: SvdMode = SvdMode.RATIO
    # ratio in [0, 1], percent in [0, 100] or count depending on svd_mode.
    # A negative value only exports the eigenvalues
    cutoff: float = 0.0
    eigenvalue_file: Optional[str] = None
    max_matrix_bytes: float = 8 * 1024 ** 3

    def __post_init__(self):
        self.svd_mode = coerce_enum(SvdMode, self.svd_mode)
        super().__post_init__()

    @property
    def dry_run(self) -> bool:
        return self.use_svd and self.cutoff < 0


@dataclass
class KernelOptions(BaseDataClass):
    """Green's function parameters (-S and -F)"""
    poisson_ratio: float = 0.25
    fudge_mode: FudgeMode = FudgeMode.RELATIVE
    fudge_value: float = 0.01

    def __post_init__(self):
        self.fudge_mode = coerce_enum(FudgeMode, self.fudge_mode)
        super().__post_init__()


@dataclass
class NormalizationOptions(BaseDataClass):
    detrend: bool = True
    normalize_range: bool = True

    @property
    def mode(self) -> NormalizationMode:
        mode = NormalizationMode.NONE
        if self.detrend:
            mode |= NormalizationMode.TREND
        if self.normalize_range:
            mode |= NormalizationMode.RANGE
        return mode


@dataclass
class WeightingOptions(BaseDataClass):
    mode: WeightingMode = WeightingMode.NONE

    def __post_init__(self):
        self.mode = coerce_enum(WeightingMode, self.mode)
        super().__post_init__()

    @property
    def active(self) -> bool:
        return self.mode != WeightingMode.NONE


@dataclass
class CoordinateOptions(BaseDataClass):
    mode: CoordinateMode = CoordinateMode.CARTESIAN

    def __post_init__(self):
        self.mode = coerce_enum(CoordinateMode, self.mode)
        super().__post_init__()

    @property
    def geographic(self) -> bool:
        return self.mode == CoordinateMode.GEOGRAPHIC


@dataclass
class OutputOptions(BaseDataClass):
    """Prediction loop controls"""
    n_threads: int = 1
    chunk_size: int = 1024
    progress: bool = False


# ============================================================================
# Solve state
# ============================================================================

@dataclass
class Observation:
    """A single (u,v) data constraint"""
    x: float
    y: float
    u: float
    v: float
    weight_u: float = 1.0
    weight_v: float = 1.0


@dataclass(frozen=True)
class NormalizationCoefficients:
    """
    Terms needed to restore data after normalization:
    u(x,y) = u' * range_u + mean_u + slope_ux * (x - mean_x) + slope_uy * (y - mean_y)
    and likewise for v
    """
    mean_x: float = 0.0
    mean_y: float = 0.0
    mean_u: float = 0.0
    mean_v: float = 0.0
    slope_ux: float = 0.0
    slope_uy: float = 0.0
    slope_vx: float = 0.0
    slope_vy: float = 0.0
    range_u: float = 0.0
    range_v: float = 0.0
    reserved: float = 0.0

    def as_array(self) -> np.ndarray:
        return np.array([self.mean_x, self.mean_y, self.mean_u, self.mean_v,
                         self.slope_ux, self.slope_uy, self.slope_vx, self.slope_vy,
                         self.range_u, self.range_v, self.reserved])


@dataclass(frozen=True)
class KernelParameters:
    epsilon_term: float
    fudge_radius_sq: float

    @classmethod
    def from_poisson_ratio(cls, nu: float, fudge_mode: FudgeMode, fudge_value: float,
                           r_min: float = np.inf) -> 'KernelParameters':
        """half of 2*epsilon + 1, and the fudge term that prevents the r = 0 singularity"""
        epsilon = 0.5 * (2.0 * (1.0 - nu) / (1.0 + nu) + 1.0)

        if fudge_mode == FudgeMode.ABSOLUTE:
            fudge = fudge_value
        elif np.isfinite(r_min) and r_min > 0:
            fudge = fudge_value * r_min
        else:
            # a single constraint has no inter-point distance, use the factor as is
            fudge = fudge_value

        return cls(epsilon_term=float(epsilon), fudge_radius_sq=float(fudge))


@dataclass
class Spectrum:
    """Singular values sorted in descending order and the right singular vectors"""
    singular_values: np.ndarray = field(default_factory=lambda: np.array([]))
    right_vectors: np.ndarray = field(default_factory=lambda: np.array([]))

    def __len__(self):
        return self.singular_values.size

    def table(self, ratios: bool = True) -> np.ndarray:
        """(index, value) table starting at index 1, largest eigenvalue first"""
        s = np.sort(self.singular_values)[::-1]
        if ratios and s.size and s[0] > 0:
            s = s / s[0]
        return np.column_stack((np.arange(1, s.size + 1, dtype=float), s))


@dataclass
class Diagnostics(BaseDataClass):
    n_read: int = 0
    n_skipped: int = 0
    n_conflicting: int = 0
    n_used: int = 0
    r_min: float = np.inf
    r_max: float = -np.inf
    solver: str = ''
    n_eigenvalues: int = 0
    n_used_eigenvalues: int = 0
    variance_explained: float = 0.0
    matrix_bytes: float = 0.0


@dataclass
class SolveContext(BaseDataClass):
    """Everything one gridding run carries from stage to stage"""
    x: np.ndarray = field(default_factory=lambda: np.array([]))
    y: np.ndarray = field(default_factory=lambda: np.array([]))
    u: np.ndarray = field(default_factory=lambda: np.array([]))
    v: np.ndarray = field(default_factory=lambda: np.array([]))
    weight_u: np.ndarray = field(default_factory=lambda: np.array([]))
    weight_v: np.ndarray = field(default_factory=lambda: np.array([]))
    normalization_mode: NormalizationMode = NormalizationMode.NONE
    coefficients: Optional[NormalizationCoefficients] = None
    kernel: Optional[KernelParameters] = None
    alpha_x: np.ndarray = field(default_factory=lambda: np.array([]))
    alpha_y: np.ndarray = field(default_factory=lambda: np.array([]))
    spectrum: Optional[Spectrum] = None
    diagnostics: Diagnostics = field(default_factory=Diagnostics)

    @property
    def n(self) -> int:
        return self.x.size


@dataclass
class GridderResult:
    u: np.ndarray = field(default_factory=lambda: np.array([]))
    v: np.ndarray = field(default_factory=lambda: np.array([]))
    x: np.ndarray = field(default_factory=lambda: np.array([]))
    y: np.ndarray = field(default_factory=lambda: np.array([]))
    diagnostics: Diagnostics = field(default_factory=Diagnostics)
    spectrum: Optional[Spectrum] = None
    dry_run: bool = False
    # True when u, v have the (ny, nx) shape of a lattice
    is_grid: bool = False
    target: Union[Any, None] = None
