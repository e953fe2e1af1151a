"""Structured extraction and statistics for gov.il land-appraisal decisions."""

__version__ = "0.1.0"
