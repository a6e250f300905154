"""Latency measurement engine."""
