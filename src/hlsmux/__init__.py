"""HLSMux - multi-stream containers to HLS renditions."""

__version__ = "0.3.0"
