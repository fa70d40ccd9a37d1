"""Proof-of-work admission gate with verified crawler exemption."""

from powgate.decider import AdmissionDecider, Admit, Challenge, RequestInfo
from powgate.middleware import ProofOfWorkMiddleware

__version__ = "0.21.0"

__all__ = [
    "AdmissionDecider",
    "Admit",
    "Challenge",
    "ProofOfWorkMiddleware",
    "RequestInfo",
]
