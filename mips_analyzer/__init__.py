"""Datapath and CPI analysis of executed MIPS instruction traces."""

__version__ = "1.0.0"
