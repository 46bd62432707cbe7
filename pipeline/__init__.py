"""
Framing pipeline modules.
"""

# Import pipeline stages
from .stages.framing import StreamFramer, EncodeChain, DecodeChain
from .stages.selection import FormatSelector, SizeProbe, SelectionResult

__all__ = [
    'StreamFramer',
    'EncodeChain',
    'DecodeChain',
    'FormatSelector',
    'SizeProbe',
    'SelectionResult',
]
