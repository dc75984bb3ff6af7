"""
Project: GPS Gridder
Date: 10/16/26 9:12 AM
"""

from enum import IntEnum, IntFlag, auto


class GridderException(Exception):
    pass


class InputError(GridderException):
    """Malformed records, wrong column count, empty or non-finite data"""
    pass


class SingularSystemError(GridderException):
    """Linear system cannot be solved exactly"""
    pass


class ConfigError(GridderException):
    """Invalid or inconsistent options, detected before any computation"""
    pass


class ResourceError(GridderException):
    """The dense system does not fit in the allowed memory"""
    pass


class NormalizationMode(IntFlag):
    """Composable normalization toggles. The mean is always removed."""
    NONE = 0
    TREND = auto()
    RANGE = auto()

    @property
    def description(self) -> str:
        parts = []
        if self & NormalizationMode.TREND:
            parts.append('remove LS plane')
        if self & NormalizationMode.RANGE:
            parts.append('normalize by range')
        return ', '.join(parts) if parts else 'remove mean only'


class SvdMode(IntEnum):
    """Eigenvalue selection strategies for the truncated SVD"""
    RATIO = auto()
    VARIANCE = auto()
    COUNT = auto()

    @property
    def description(self) -> str:
        descriptions = {
            SvdMode.RATIO: 'Eigenvalue ratio s(i)/s(0) cutoff',
            SvdMode.VARIANCE: 'Percent of data variance explained',
            SvdMode.COUNT: 'Largest N eigenvalues'
        }
        return descriptions.get(self, 'UNKNOWN')


class FudgeMode(IntEnum):
    """How the fudge term added to squared distances is obtained"""
    ABSOLUTE = auto()
    RELATIVE = auto()

    @property
    def description(self) -> str:
        descriptions = {
            FudgeMode.ABSOLUTE: 'Fixed delta radius',
            FudgeMode.RELATIVE: 'Factor times the shortest inter-point distance'
        }
        return descriptions.get(self, 'UNKNOWN')


class WeightingMode(IntEnum):
    NONE = auto()
    SIGMA = auto()
    WEIGHT = auto()

    @property
    def description(self) -> str:
        descriptions = {
            WeightingMode.NONE: 'Unweighted',
            WeightingMode.SIGMA: 'Weights from 1/sigma',
            WeightingMode.WEIGHT: 'Weights given explicitly'
        }
        return descriptions.get(self, 'UNKNOWN')


class CoordinateMode(IntEnum):
    CARTESIAN = auto()
    GEOGRAPHIC = auto()

    @property
    def description(self) -> str:
        descriptions = {
            CoordinateMode.CARTESIAN: 'Cartesian user distances',
            CoordinateMode.GEOGRAPHIC: 'Flat Earth distances in km'
        }
        return descriptions.get(self, 'UNKNOWN')


class Registration(IntEnum):
    """Grid node registration"""
    GRIDLINE = 0
    PIXEL = 1

    @property
    def description(self) -> str:
        descriptions = {
            Registration.GRIDLINE: 'Gridline (nodes on cell corners)',
            Registration.PIXEL: 'Pixel (nodes on cell centers)'
        }
        return descriptions.get(self, 'UNKNOWN')
