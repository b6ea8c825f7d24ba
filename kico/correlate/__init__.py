"""Correlation of resolver events with pod identities."""

from kico.correlate.correlator import ConnectionCorrelator, CorrelationOutcome, split_segments

__all__ = ["ConnectionCorrelator", "CorrelationOutcome", "split_segments"]
