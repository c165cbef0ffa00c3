"""Garbage collector for ephemeral Terraform test resources."""

__version__ = "0.1.0"
