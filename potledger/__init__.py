"""
PotLedger - Group Financial Settlement Engine

Tracks shared money among a group of people (a household pot or a trip)
and answers two questions at any time:
1. What is each member's net position?
2. What is the smallest set of transfers that brings everyone back to balance?

DESIGN PRINCIPLES:
1. Every mutation is followed by a full recompute
2. Money is fixed-point (integer minor units), never float
3. No silent corrections: inconsistent splits are surfaced, not patched
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "PotLedger Team"
