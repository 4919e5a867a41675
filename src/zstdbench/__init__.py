"""zstdbench: compare zstd performance across source revisions.

Builds libzstd at each configured revision, runs a fixed suite of
micro-benchmarks against every build in a fresh process, and renders
the accumulated results as comparison tables.
"""

__version__ = "0.1.0"
