"""
guestmap - Encoding, Association and Similarity Engine

This package recomputes analysis artifacts from checked-in event
registrations: a categorical code dictionary, a numeric feature table,
a Cramér's V association matrix, and a guest similarity graph.

Key Design Decisions:
- Every run rebuilds all artifacts from the current eligible records
- The dictionary is passed explicitly and never mutated after build
- Invalid labels keep a code but are excluded from numeric analysis
- Uncomputable statistics are an explicit N/A, never 0 or NaN
- The similarity graph uses no demographic variables
"""

__version__ = "1.0.0"
