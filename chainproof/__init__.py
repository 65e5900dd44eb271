# chainproof
# Declarative verification and aggregation of chain evidence

"""
Core invariant: No aggregate, assertion, or output may exist unless every
evidence record in the batch matched its declared pattern.

A circuit is one immutable choice of pattern, extraction, aggregation and
output layout. The engine in this package serves every circuit.
"""
