"""appforge -- module-composition scaffolder for Flutter applications."""

__version__ = "0.1.0"
