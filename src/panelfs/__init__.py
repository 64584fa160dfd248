"""panelfs - a hosting panel's server files as a local-feeling file tree."""

__version__ = "0.4.0"
