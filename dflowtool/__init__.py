"""dflowtool - DFlow Prediction Markets live-data schema discovery."""

__version__ = "0.1.0"
