# Aggregation package for chainproof
"""
Extraction and aggregation of validated evidence.

Extraction projects each record to one scalar. Aggregation reduces
those scalars with exact, width-checked arithmetic.
"""
