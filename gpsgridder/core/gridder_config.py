"""
Project: GPS Gridder
Date: 10/16/26 4:20 PM
"""
from dataclasses import asdict
from enum import IntEnum
from typing import Dict, List, Optional, Any, Union
import json
import os
import logging

logger = logging.getLogger(__name__)

# app
from ..core.type_declarations import SvdMode, ConfigError
from ..core.logging_config import setup_gridder_logging
from ..core.data_classes import (SolverOptions, KernelOptions, NormalizationOptions,
                                 WeightingOptions, CoordinateOptions, OutputOptions)


def load_json(input_json: Union[str, dict] = None):
    """load json file, string, or dict, will always return dict"""
    if isinstance(input_json, dict):
        return input_json
    elif isinstance(input_json, str) and os.path.isfile(input_json):
        with open(input_json, 'r') as f:
            return json.load(f)
    elif isinstance(input_json, str):
        return json.loads(input_json)
    else:
        raise ValueError("Either filepath or json_dict or json_string must be provided")


class GridderConfig:
    """Central configuration manager for gridding operations"""

    SECTIONS = {
        'solver': SolverOptions,
        'kernel': KernelOptions,
        'normalization': NormalizationOptions,
        'weighting': WeightingOptions,
        'coordinates': CoordinateOptions,
        'output': OutputOptions
    }

    def __init__(self,
                 custom_config: Optional[Dict[str, Any]] = None,
                 json_file: Union[str, dict] = None,
                 silent: bool = False):
        """
        Initialize gridder configuration

        Args:
            custom_config: Dictionary of custom configuration overrides, keyed by section
            json_file: either a json file path or a json dict or string to load data from
            silent: only report critical messages
        """
        setup_gridder_logging(level=logging.CRITICAL if silent else logging.INFO)

        self.solver = SolverOptions()
        self.kernel = KernelOptions()
        self.normalization = NormalizationOptions()
        self.weighting = WeightingOptions()
        self.coordinates = CoordinateOptions()
        self.output = OutputOptions()

        if json_file:
            self.load_from_json(json_file)

        if custom_config:
            self.apply_custom_config(custom_config)

    def apply_custom_config(self, config: Dict[str, Any]) -> None:
        """Apply custom configuration overrides"""
        for section_name, section_config in config.items():
            if section_name not in self.SECTIONS:
                raise ConfigError(f"Unknown configuration section '{section_name}'")

            section = getattr(self, section_name)
            for key, value in section_config.items():
                if not hasattr(section, key):
                    raise ConfigError(f"Unknown option '{key}' in configuration section '{section_name}'")
                setattr(section, key, value)

            # rebuild so that enumerations given as names or integers are converted
            setattr(self, section_name, self.SECTIONS[section_name](**self._section_dict(section)))

    def validate_config(self) -> List[str]:
        """Validate configuration and return list of issues"""
        issues = []

        if self.kernel.poisson_ratio <= -1.0:
            issues.append("Poisson's ratio must be > -1")

        if not self.kernel.fudge_value > 0:
            issues.append('Fudge value must be > 0 to avoid Green function singularities')

        if self.solver.use_svd:
            if self.solver.cutoff < 0 and not self.solver.eigenvalue_file:
                issues.append('Must specify file name for eigenvalues if cut < 0')
            if self.solver.svd_mode == SvdMode.VARIANCE and self.solver.cutoff > 100.0:
                issues.append('Variance explained cannot exceed 100%')
            if self.solver.svd_mode == SvdMode.RATIO and self.solver.cutoff > 1.0:
                issues.append('Eigenvalue ratio cutoff cannot exceed 1')
            if self.solver.svd_mode == SvdMode.COUNT and self.solver.cutoff != int(self.solver.cutoff):
                issues.append('Number of eigenvalues must be an integer')

        if self.solver.max_matrix_bytes is not None and self.solver.max_matrix_bytes <= 0:
            issues.append('Maximum matrix size must be > 0')

        if self.output.n_threads < 1:
            issues.append('Number of threads must be >= 1')

        if self.output.chunk_size < 1:
            issues.append('Chunk size must be >= 1')

        return issues

    def check(self) -> None:
        """raise ConfigError listing all issues, if any"""
        issues = self.validate_config()
        if issues:
            raise ConfigError('; '.join(issues))

    @staticmethod
    def _section_dict(section) -> dict:
        return {k: v for k, v in asdict(section).items() if not k.startswith('_')}

    def to_dict(self) -> dict:
        out = {}
        for name in self.SECTIONS:
            out[name] = {k: v.name.lower() if isinstance(v, IntEnum) else v
                         for k, v in self._section_dict(getattr(self, name)).items()}
        return out

    def to_json(self, filename: Optional[str] = None) -> str:
        text = json.dumps(self.to_dict(), indent=4)
        if filename:
            with open(filename, 'w') as f:
                f.write(text)
        return text

    def load_from_json(self, _json: Union[dict, str] = None):
        # load the sections present in the json file
        data = load_json(_json)

        for name in data:
            if name not in self.SECTIONS:
                raise ConfigError(f"Unknown configuration section '{name}'")

        for name, section_class in self.SECTIONS.items():
            if name in data:
                unknown = set(data[name]) - set(self._section_dict(section_class()))
                if unknown:
                    raise ConfigError(f"Unknown option(s) {', '.join(sorted(unknown))} in configuration "
                                      f"section '{name}'")
                setattr(self, name, section_class(**data[name]))

    def summary(self) -> str:
        mode = 'SVD (' + self.solver.svd_mode.description + f' = {self.solver.cutoff:g})' \
            if self.solver.use_svd else 'Gauss-Jordan'
        return (f'nu = {self.kernel.poisson_ratio:g}, fudge = {self.kernel.fudge_mode.description} '
                f'{self.kernel.fudge_value:g}, solver = {mode}, normalization = '
                f'{self.normalization.mode.description}, {self.coordinates.mode.description}')
