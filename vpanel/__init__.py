"""Virtual front panel: UDP panel packets decoded and streamed to browsers, plus kernel panel diagnostics."""

__version__ = "0.1.0"