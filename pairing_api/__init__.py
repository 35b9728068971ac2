"""
WhatsApp pairing service: issues pairing codes and hands back session strings.
"""

__version__ = "1.0.0"
