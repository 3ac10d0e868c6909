"""Kernel: tool integrity, call validation and secure transport."""
