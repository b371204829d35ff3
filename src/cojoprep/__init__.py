"""cojoprep — GWAS summary statistics and reference panel preparation for GCTA-COJO."""

__version__ = "0.1.0"
