"""Hex, hash, logging, worker and monitoring-API utilities for a hash miner."""

__version__ = "0.1.0"

__all__ = ["apirequests", "apiserver", "apistats", "commondata", "fixedhash", "log", "worker"]