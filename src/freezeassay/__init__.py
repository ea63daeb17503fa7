"""freezeassay — analysis engine for ice-nucleating-particle freezing assays."""

__version__ = "0.1.0"
