# =============================================================================
# File Ingestion Shared Libraries
# =============================================================================
# This package contains shared libraries for the file ingestion worker.
# See individual sub-packages for detailed documentation.
# =============================================================================

"""
File ingestion shared libraries.

Sub-packages:
- models: Pydantic data models, job records and configuration
- tabular_utils: header normalization, type inference, row sources, batching
- ingestion: table provisioning, bulk loading and job status reporting
"""

__version__ = "0.1.0"
