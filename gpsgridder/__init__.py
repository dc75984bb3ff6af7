from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("gpsgridder")
except PackageNotFoundError:
    # package is not installed
    __version__ = "0.0.0"

__all__ = [
    'core',
    'elasticity',
    'data',
    'visualization',
    'cli'
]
