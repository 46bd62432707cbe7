"""
Pipeline stages for framed serialization.
"""

from .framing import StreamFramer, EncodeChain, DecodeChain
from .selection import FormatSelector, SizeProbe, CandidateTrial, SelectionResult

__all__ = [
    'StreamFramer',
    'EncodeChain',
    'DecodeChain',
    'FormatSelector',
    'SizeProbe',
    'CandidateTrial',
    'SelectionResult',
]
