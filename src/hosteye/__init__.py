"""hosteye - periodic host metrics collection for time-series databases."""

__version__ = "0.1.0"
