"""
SSL/TLS Handshake Compatibility Framework

This package predicts whether a server/client pair of protocol settings can
complete a handshake and verifies each prediction against real handshakes
between two agent processes.
"""

__version__ = "1.0.0"
__all__ = ['vocabulary', 'endpoint', 'generator', 'predictor', 'matrix', 'messages',
           'negotiation', 'agent', 'orchestrator', 'config', 'results', 'reports']
