"""
Passerelle - cross-chain stablecoin transfer tracking.

Records transfers bridged to the destination chain, drives the
bridge-then-deposit lifecycle and reconciles records with on-chain
deposits.
"""

__version__ = "0.1.0"
