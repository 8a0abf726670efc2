"""
Batch Mailer: send one fixed message to a pool of pending recipients and
record who has been delivered.
"""

__version__ = "0.1.0"
