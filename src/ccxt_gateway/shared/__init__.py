"""Shared canonical model used across normalization, adapters and the facade."""
