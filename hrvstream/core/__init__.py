"""
Core Module

Interval ingestion, HRV analysis and per-session engine state.
"""
