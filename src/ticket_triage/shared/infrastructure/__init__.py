"""
Infrastructure Layer
=====================

Low-level technical concerns shared by all modules:
- Logging setup and correlation ids
- Latency timing
"""
